"""Batch WebP conversion with sidecar bookkeeping."""
import contextlib
import logging
import os
from pathlib import Path
from typing import Iterable, Optional

from sqlalchemy.exc import SQLAlchemyError

from webpdesk.config import (
    IMAGE_EXTENSIONS,
    INPUT_DIR,
    METADATA_DIR_NAME,
    OUTPUT_DIR,
    OUTPUT_EXTENSION,
    SIDECAR_BACKEND,
)
from webpdesk.conversion.codec import Codec, CodecError, PillowWebPCodec
from webpdesk.conversion.gallery import list_gallery
from webpdesk.conversion.models import (
    BatchSummary,
    ConversionInput,
    ConversionResult,
    GalleryEntry,
    MetadataSidecar,
)
from webpdesk.conversion.profile import EncodeProfile
from webpdesk.conversion.sidecar import FileSidecarStore, SidecarStore

logger = logging.getLogger("converter.service")


def make_sidecar_store(output_dir: Path, backend: str = SIDECAR_BACKEND) -> SidecarStore:
    if backend == "sql":
        from webpdesk.db import SqlSidecarStore

        try:
            return SqlSidecarStore()
        except (SQLAlchemyError, OSError) as e:
            logger.exception("Sidecar database unavailable (%s). Falling back to sidecar files.", e)
            return FileSidecarStore(Path(output_dir) / METADATA_DIR_NAME)
    if backend != "files":
        logger.warning("Unknown SIDECAR_BACKEND %r, using files", backend)
    return FileSidecarStore(Path(output_dir) / METADATA_DIR_NAME)


class ConversionService:
    """Converts batches into one output directory and keeps a sidecar per output."""

    def __init__(
        self,
        output_dir: Path = OUTPUT_DIR,
        store: Optional[SidecarStore] = None,
        codec: Optional[Codec] = None,
        input_dir: Path = INPUT_DIR,
    ):
        self.output_dir = Path(output_dir)
        self.input_dir = Path(input_dir)
        self.metadata_dir = self.output_dir / METADATA_DIR_NAME
        self.store = store if store is not None else make_sidecar_store(self.output_dir)
        self.codec = codec if codec is not None else PillowWebPCodec()

    def ensure_dirs(self) -> None:
        """Create the output and sidecar areas. Safe to call on every batch."""
        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            self.metadata_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            # Each item's write will fail and say so; the batch still completes
            logger.error("Error creating directories under %s: %s", self.output_dir, e)

    def output_path_for(self, name: str) -> Path:
        return self.output_dir / f"{Path(name).stem}{OUTPUT_EXTENSION}"

    def _write_output(self, out_path: Path, data: bytes) -> None:
        tmp = out_path.with_name(out_path.name + ".part")
        try:
            tmp.write_bytes(data)
            os.replace(tmp, out_path)
        except OSError:
            with contextlib.suppress(OSError):
                tmp.unlink()
            raise

    def convert_one(self, item: ConversionInput, profile: EncodeProfile) -> ConversionResult:
        """Convert a single input. Failures come back as a failed result, never raised."""
        name = item.name
        original_size = item.original_size
        if item.path is not None:
            try:
                st = item.path.stat()
            except OSError as e:
                logger.warning("Cannot read input %s: %s", item.path, e)
                return ConversionResult.failed(name, f"Input error: {e.strerror or e}")
            if not item.path.is_file():
                return ConversionResult.failed(name, f"Input error: not a file: {item.path}")
            original_size = st.st_size
        elif item.data is None:
            return ConversionResult.failed(name, "Input error: no file path or data given")
        if original_size is None:
            original_size = len(item.data)

        out_path = self.output_path_for(name)
        logger.info("Converting %s with options: %s", name, profile.to_pillow_options())
        try:
            data = self.codec.encode(item.source, profile)
        except CodecError as e:
            logger.warning("Error converting %s: %s", name, e)
            return ConversionResult.failed(name, f"Codec error: {e}", original_size)

        try:
            self._write_output(out_path, data)
        except OSError as e:
            logger.error("Could not write %s: %s", out_path, e)
            return ConversionResult.failed(name, f"Write error: {e.strerror or e}", original_size)

        sidecar = MetadataSidecar(original_name=name, original_size=original_size)
        if not self.store.write(out_path.stem, sidecar):
            logger.warning("Converted %s but its metadata was not saved; original size will show as unknown", name)
            # A sidecar left over from an earlier input with this stem would now be wrong
            self.store.delete(out_path.stem)

        logger.info("Converted %s -> %s", name, out_path.name)
        return ConversionResult(
            success=True,
            source_name=name,
            original_size=original_size,
            output_name=out_path.name,
            output_path=out_path,
            output_size=len(data),
        )

    def run_batch(self, inputs: Iterable[ConversionInput], profile: EncodeProfile) -> list[ConversionResult]:
        """
        Convert inputs one after another. One result per input, in input order.
        Inputs sharing a stem overwrite each other; the last one wins.
        """
        inputs = list(inputs)
        logger.info("Received conversion request for %s files", len(inputs))
        self.ensure_dirs()
        results: list[ConversionResult] = []
        for item in inputs:
            try:
                results.append(self.convert_one(item, profile))
            except Exception as e:
                # Unexpected codec or store bug: keep it in this item's result
                logger.exception("Unexpected failure converting %s: %s", item.name, e)
                results.append(ConversionResult.failed(
                    item.name, f"Conversion error: {str(e) or type(e).__name__}", item.original_size
                ))
        summary = summarize(results)
        logger.info("Batch done: %s converted, %s failed", summary.succeeded, summary.failed)
        return results

    def convert_directory(
        self,
        input_dir: Optional[Path] = None,
        profile: Optional[EncodeProfile] = None,
        cleanup: bool = False,
    ) -> list[ConversionResult]:
        """Convert every image in a drop folder (default: input_dir). With cleanup, converted sources are removed."""
        input_dir = Path(input_dir) if input_dir is not None else self.input_dir
        profile = profile or EncodeProfile()
        try:
            paths = sorted(
                p for p in input_dir.iterdir()
                if p.is_file() and p.suffix.lower() in IMAGE_EXTENSIONS
            )
        except OSError as e:
            logger.warning("Error reading input directory %s: %s", input_dir, e)
            return []
        results = self.run_batch([ConversionInput.from_path(p) for p in paths], profile)
        if cleanup:
            for path, result in zip(paths, results):
                if not result.success:
                    continue
                try:
                    path.unlink()
                except OSError as e:
                    logger.warning("Could not remove input %s: %s", path, e)
        return results

    def list_images(self) -> list[GalleryEntry]:
        return list_gallery(self.output_dir, self.store)

    def delete_output(self, path: Path) -> tuple[bool, Optional[str]]:
        """Delete a converted file, then its sidecar. Only the file deletion can fail."""
        path = Path(path)
        try:
            path.unlink()
        except OSError as e:
            logger.error("Error deleting file %s: %s", path, e)
            return False, e.strerror or str(e)
        logger.info("Deleted %s", path.name)
        self.store.delete(path.stem)
        return True, None


def summarize(results: Iterable[ConversionResult]) -> BatchSummary:
    summary = BatchSummary()
    for r in results:
        summary.total += 1
        if r.success:
            summary.succeeded += 1
            summary.original_bytes += r.original_size or 0
            summary.output_bytes += r.output_size or 0
        else:
            summary.failed += 1
    return summary


# Singleton
_conversion_service: Optional[ConversionService] = None


def get_conversion_service() -> ConversionService:
    global _conversion_service
    if _conversion_service is None:
        _conversion_service = ConversionService()
    return _conversion_service
