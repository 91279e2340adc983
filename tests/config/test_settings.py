"""Tests for CopeSettings — unified settings with TOML source."""

from pathlib import Path

import click
import pytest

from copectl.config.settings import CopeSettings


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("COPECTL_CONFIG", "COPECTL_MANIFEST__PATH", "COPECTL_DISPATCH__MAX_CONCURRENCY"):
        monkeypatch.delenv(name, raising=False)


class TestCopeSettingsDefaults:
    def test_all_defaults(self, tmp_path: Path) -> None:
        """With no TOML and no env vars, all fields use code defaults."""
        settings = CopeSettings.from_cli(project_root=tmp_path)
        assert settings.project_root == tmp_path
        assert settings.json_output is False
        assert settings.verbose is False
        assert settings.manifest.path == "capabilities.yaml"
        assert settings.dispatch.max_concurrency == 4
        assert settings.dispatch.request_timeout == 600.0
        assert settings.invoker.default_max_turns == 10
        assert settings.invoker.default_command == []
        assert settings.credentials.required is False
        assert settings.mcp.transport == "stdio"
        assert settings.specialists == {}

    def test_frozen(self, tmp_path: Path) -> None:
        settings = CopeSettings.from_cli(project_root=tmp_path)
        with pytest.raises(Exception):
            settings.quiet = True  # type: ignore[misc]


class TestTomlSource:
    def test_loads_from_toml(self, tmp_path: Path) -> None:
        (tmp_path / "copectl.toml").write_text(
            '[manifest]\npath = "config/caps.yaml"\n[dispatch]\nmax_concurrency = 2\n'
        )
        settings = CopeSettings.from_cli(project_root=tmp_path)
        assert settings.manifest.path == "config/caps.yaml"
        assert settings.dispatch.max_concurrency == 2
        assert settings.dispatch.request_timeout == 600.0  # default preserved

    def test_specialist_sections(self, tmp_path: Path) -> None:
        (tmp_path / "copectl.toml").write_text(
            "[specialists.calendar-agent]\n"
            'command = ["cope-run", "{specialist}"]\n'
            "max_turns = 4\n"
            'requires = ["google-calendar"]\n'
        )
        settings = CopeSettings.from_cli(project_root=tmp_path)
        spec = settings.specialists["calendar-agent"]
        assert spec.command == ["cope-run", "{specialist}"]
        assert spec.max_turns == 4
        assert spec.timeout is None
        assert spec.requires == ["google-calendar"]

    def test_blank_command_entry_rejected(self, tmp_path: Path) -> None:
        (tmp_path / "copectl.toml").write_text('[specialists.x]\ncommand = ["run", ""]\n')
        with pytest.raises(Exception, match="non-empty"):
            CopeSettings.from_cli(project_root=tmp_path)

    def test_invalid_toml_is_a_click_error(self, tmp_path: Path) -> None:
        (tmp_path / "copectl.toml").write_text("[dispatch\n")
        with pytest.raises(click.ClickException, match="Invalid TOML"):
            CopeSettings.from_cli(project_root=tmp_path)

    def test_explicit_config_path(self, tmp_path: Path) -> None:
        custom = tmp_path / "custom" / "my.toml"
        custom.parent.mkdir(parents=True)
        custom.write_text("[invoker]\ndefault_timeout = 5.0\n")
        settings = CopeSettings.from_cli(config_path=str(custom))
        assert settings.invoker.default_timeout == 5.0
        assert settings.config_path == custom
        assert settings.project_root == custom.parent


class TestPrecedence:
    def test_cli_flags_override(self, tmp_path: Path) -> None:
        settings = CopeSettings.from_cli(
            project_root=tmp_path, json_output=True, quiet=True, verbose=True
        )
        assert settings.json_output is True
        assert settings.quiet is True
        assert settings.verbose is True

    def test_env_overrides_toml(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        (tmp_path / "copectl.toml").write_text("[dispatch]\nmax_concurrency = 2\n")
        monkeypatch.setenv("COPECTL_DISPATCH__MAX_CONCURRENCY", "7")
        settings = CopeSettings.from_cli(project_root=tmp_path)
        assert settings.dispatch.max_concurrency == 7

    def test_max_concurrency_must_be_positive(self, tmp_path: Path) -> None:
        (tmp_path / "copectl.toml").write_text("[dispatch]\nmax_concurrency = 0\n")
        with pytest.raises(Exception):
            CopeSettings.from_cli(project_root=tmp_path)


class TestPathResolution:
    def test_relative_manifest_anchored_at_project_root(self, tmp_path: Path) -> None:
        settings = CopeSettings.from_cli(project_root=tmp_path)
        assert settings.manifest_path == tmp_path / "capabilities.yaml"

    def test_absolute_path_kept(self, tmp_path: Path) -> None:
        target = tmp_path / "elsewhere" / "caps.yaml"
        settings = CopeSettings.from_cli(project_root=tmp_path, manifest={"path": str(target)})
        assert settings.manifest_path == target

    def test_home_is_expanded(self, tmp_path: Path) -> None:
        settings = CopeSettings.from_cli(project_root=tmp_path)
        assert settings.credentials_path == Path.home() / ".config" / "cope-agent" / ".env"
