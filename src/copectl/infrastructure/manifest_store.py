"""ManifestStore — load the capability manifest once per process.

The manifest is YAML on disk and immutable once loaded. ``load()`` parses on
first call and returns the identical cached instance afterwards; there is no
invalidation, so editing the file requires a restart.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any

from pydantic import ValidationError
from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from copectl.domain.errors import ManifestError
from copectl.domain.manifest import Manifest

logger = logging.getLogger(__name__)


def _describe_validation_error(exc: ValidationError) -> str:
    first = exc.errors()[0]
    location = ".".join(str(part) for part in first["loc"])
    return f"{location}: {first['msg']}"


def parse_manifest(path: Path) -> Manifest:
    """Read and validate the manifest at *path* (no caching).

    Raises ManifestError when the file is missing, is not YAML, contains
    duplicate keys, or violates the schema.
    """
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        msg = f"Capability manifest not found: {path}"
        raise ManifestError(msg) from exc
    except (OSError, UnicodeError) as exc:
        msg = f"Cannot read capability manifest {path}: {exc}"
        raise ManifestError(msg) from exc

    try:
        data: Any = YAML(typ="safe").load(raw)
    except YAMLError as exc:
        msg = f"Invalid YAML in {path}: {exc}"
        raise ManifestError(msg) from exc

    if not isinstance(data, dict):
        msg = f"Capability manifest {path} must be a mapping at the top level"
        raise ManifestError(msg)

    try:
        return Manifest.model_validate(data)
    except ValidationError as exc:
        msg = f"Invalid capability manifest {path}: {_describe_validation_error(exc)}"
        raise ManifestError(msg) from exc


class ManifestStore:
    """Lazy, load-once holder for the process manifest.

    Handed explicitly to the matcher and the invoker; nothing else in the
    process keeps a manifest reference.
    """

    def __init__(self, path: Path) -> None:
        self._path = path
        self._manifest: Manifest | None = None
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    @property
    def loaded(self) -> bool:
        return self._manifest is not None

    def load(self) -> Manifest:
        """Return the manifest, parsing it on first use."""
        if self._manifest is not None:
            return self._manifest
        with self._lock:
            if self._manifest is None:
                self._manifest = parse_manifest(self._path)
                logger.debug(
                    "Loaded manifest %s: %d domains, %d workflows",
                    self._path,
                    len(self._manifest.domains),
                    len(self._manifest.workflows),
                )
        return self._manifest

    @classmethod
    def from_manifest(cls, manifest: Manifest, *, path: Path | None = None) -> ManifestStore:
        """Build a store around an already-constructed manifest."""
        store = cls(path or Path("<memory>"))
        store._manifest = manifest
        return store
