"""Metadata sidecars: one small JSON record per converted output, keyed by output stem."""
import contextlib
import logging
import os
from pathlib import Path
from typing import Optional, Protocol

from webpdesk.conversion.models import MetadataSidecar

logger = logging.getLogger("converter.sidecar")

SIDECAR_SUFFIX = ".meta.json"


class SidecarStore(Protocol):
    def write(self, name: str, sidecar: MetadataSidecar) -> bool: ...

    def read(self, name: str) -> Optional[MetadataSidecar]: ...

    def delete(self, name: str) -> None: ...


class FileSidecarStore:
    """Sidecars as ``<metadata_dir>/<stem>.meta.json`` files."""

    def __init__(self, metadata_dir: Path):
        self.metadata_dir = Path(metadata_dir)

    def path_for(self, name: str) -> Path:
        return self.metadata_dir / f"{name}{SIDECAR_SUFFIX}"

    def write(self, name: str, sidecar: MetadataSidecar) -> bool:
        path = self.path_for(name)
        tmp = path.with_name(path.name + ".tmp")
        try:
            self.metadata_dir.mkdir(parents=True, exist_ok=True)
            tmp.write_text(sidecar.to_json(), encoding="utf-8")
            os.replace(tmp, path)
            return True
        except OSError as e:
            logger.warning("Could not write sidecar for %s: %s", name, e)
            with contextlib.suppress(OSError):
                tmp.unlink()
            return False

    def read(self, name: str) -> Optional[MetadataSidecar]:
        path = self.path_for(name)
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Could not read sidecar %s: %s", path.name, e)
            return None
        if not text.strip():
            return None
        try:
            return MetadataSidecar.from_json(text)
        except ValueError as e:
            # json.JSONDecodeError is a ValueError too
            logger.warning("Ignoring malformed sidecar %s: %s", path.name, e)
            return None

    def delete(self, name: str) -> None:
        path = self.path_for(name)
        try:
            path.unlink()
            logger.info("Deleted sidecar %s", path.name)
        except FileNotFoundError:
            logger.debug("No sidecar to delete for %s", name)
        except OSError as e:
            logger.warning("Could not delete sidecar %s: %s", path, e)
