"""Rebuild the converted-images gallery from what is on disk."""
import logging
from datetime import datetime, timezone
from pathlib import Path

from webpdesk.config import OUTPUT_EXTENSION
from webpdesk.conversion.models import GalleryEntry
from webpdesk.conversion.sidecar import SidecarStore

logger = logging.getLogger("converter.gallery")


def list_gallery(output_dir: Path, store: SidecarStore) -> list[GalleryEntry]:
    """
    Join every ``*.webp`` in output_dir with its sidecar, newest first.
    A missing or unreadable output directory is an empty gallery.
    """
    try:
        candidates = [p for p in Path(output_dir).iterdir() if p.suffix.lower() == OUTPUT_EXTENSION]
    except OSError as e:
        logger.info("Output directory %s not readable (%s); gallery is empty", output_dir, e)
        return []

    entries: list[GalleryEntry] = []
    for path in candidates:
        try:
            st = path.stat()
        except OSError as e:
            # Deleted between listing and stat
            logger.debug("Skipping %s: %s", path.name, e)
            continue
        if not path.is_file():
            continue
        sidecar = store.read(path.stem)
        if sidecar is None:
            logger.debug("No metadata found for %s", path.name)
        entries.append(GalleryEntry(
            name=path.name,
            path=path,
            size=st.st_size,
            created_at=datetime.fromtimestamp(st.st_mtime, tz=timezone.utc),
            original_size=sidecar.original_size if sidecar else None,
        ))
    entries.sort(key=lambda e: e.created_at, reverse=True)
    return entries
