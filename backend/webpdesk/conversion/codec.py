"""WebP codec boundary. Pillow does the actual decode/encode."""
import io
import logging
from pathlib import Path
from typing import Protocol, Union

from PIL import Image, UnidentifiedImageError

from webpdesk.conversion.profile import EncodeProfile

logger = logging.getLogger("converter.codec")

Source = Union[Path, str, bytes]


class CodecError(Exception):
    """Input could not be decoded or encoded. str(err) is shown to the user."""


class Codec(Protocol):
    def encode(self, source: Source, profile: EncodeProfile) -> bytes: ...


class PillowWebPCodec:
    """Encode anything Pillow can open as a single-frame WebP."""

    def encode(self, source: Source, profile: EncodeProfile) -> bytes:
        fp = io.BytesIO(source) if isinstance(source, (bytes, bytearray)) else source
        try:
            with Image.open(fp) as img:
                img.load()
                has_alpha = img.mode in ("RGBA", "LA", "PA") or (
                    img.mode == "P" and "transparency" in img.info
                )
                if img.mode not in ("RGB", "RGBA"):
                    img = img.convert("RGBA" if has_alpha else "RGB")
                out = io.BytesIO()
                img.save(out, format="WEBP", **profile.to_pillow_options())
        except UnidentifiedImageError as e:
            raise CodecError(f"Unsupported image format: {e}") from e
        except Image.DecompressionBombError as e:
            raise CodecError(str(e)) from e
        except (OSError, ValueError, SyntaxError) as e:
            # Truncated or corrupt data surfaces as OSError / SyntaxError from the plugins
            raise CodecError(f"Could not convert image: {e}") from e
        data = out.getvalue()
        if not data:
            raise CodecError("Codec produced no output")
        return data
