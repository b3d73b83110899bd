"""Conversion inputs, results, sidecar records and gallery entries."""
import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional


@dataclass
class ConversionInput:
    """One item submitted for conversion: a file path, or a name plus raw bytes."""

    name: str
    path: Optional[Path] = None
    data: Optional[bytes] = None
    original_size: Optional[int] = None  # bytes; stat'd by the runner for paths

    @classmethod
    def from_path(cls, path) -> "ConversionInput":
        path = Path(path)
        return cls(name=path.name, path=path)

    @classmethod
    def from_buffer(cls, name: str, data: bytes, declared_size: Optional[int] = None) -> "ConversionInput":
        size = declared_size if declared_size is not None else len(data)
        return cls(name=name, data=data, original_size=size)

    @property
    def stem(self) -> str:
        return Path(self.name).stem

    @property
    def source(self):
        """What the codec receives: the path, or the raw payload."""
        return self.path if self.path is not None else self.data


@dataclass
class ConversionResult:
    success: bool
    source_name: str
    original_size: Optional[int] = None
    output_name: Optional[str] = None
    output_path: Optional[Path] = None
    output_size: Optional[int] = None
    error: Optional[str] = None

    @classmethod
    def failed(cls, source_name: str, error: str, original_size: Optional[int] = None) -> "ConversionResult":
        return cls(success=False, source_name=source_name, original_size=original_size, error=error)

    def to_dict(self) -> dict:
        out = {
            "success": self.success,
            "original": self.source_name,
            "originalSize": self.original_size,
        }
        if self.success:
            out["output"] = self.output_name
            out["outputPath"] = str(self.output_path)
            out["outputSize"] = self.output_size
        else:
            out["error"] = self.error
        return out


def _parse_timestamp(value: str) -> datetime:
    # Older sidecars were written by JavaScript's toISOString(), which ends in "Z"
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    ts = datetime.fromisoformat(value)
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


@dataclass
class MetadataSidecar:
    """Per-output record of what the file was before conversion."""

    original_name: str
    original_size: int
    converted_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_json(self) -> str:
        return json.dumps({
            "originalName": self.original_name,
            "originalSize": self.original_size,
            "convertedAt": self.converted_at.isoformat(),
        })

    @classmethod
    def from_json(cls, text: str) -> "MetadataSidecar":
        """Parse a sidecar document. Raises ValueError on anything malformed."""
        doc = json.loads(text)
        if not isinstance(doc, dict):
            raise ValueError("sidecar is not an object")
        name = doc.get("originalName")
        size = doc.get("originalSize")
        converted_at = doc.get("convertedAt")
        if not isinstance(name, str):
            raise ValueError("originalName missing")
        if isinstance(size, bool) or not isinstance(size, int) or size < 0:
            raise ValueError("originalSize missing or not a byte count")
        if not isinstance(converted_at, str):
            raise ValueError("convertedAt missing")
        return cls(original_name=name, original_size=size, converted_at=_parse_timestamp(converted_at))


@dataclass
class GalleryEntry:
    name: str
    path: Path
    size: int
    created_at: datetime
    original_size: Optional[int] = None

    @property
    def savings_percent(self) -> Optional[float]:
        """Size reduction vs the original, negative when the WebP came out larger."""
        if not self.original_size:
            return None
        return round((self.original_size - self.size) / self.original_size * 100.0, 1)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "path": str(self.path),
            "size": self.size,
            "created": self.created_at.isoformat(),
            "originalSize": self.original_size,
            "savingsPercent": self.savings_percent,
        }


@dataclass
class BatchSummary:
    total: int = 0
    succeeded: int = 0
    failed: int = 0
    original_bytes: int = 0
    output_bytes: int = 0

    @property
    def message(self) -> str:
        if self.total == 0:
            return "No images to convert."
        if self.failed == 0:
            return f"Successfully converted {self.succeeded} image(s)."
        if self.succeeded == 0:
            return f"Failed to convert {self.failed} image(s)."
        return f"Converted {self.succeeded} image(s), {self.failed} failed."

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "originalBytes": self.original_bytes,
            "outputBytes": self.output_bytes,
            "message": self.message,
        }
