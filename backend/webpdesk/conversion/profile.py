"""Encode profile resolution and the front end's converter settings."""
import math
from dataclasses import asdict, dataclass
from typing import Any, Mapping, Optional

from webpdesk.config import DEFAULT_EFFORT, DEFAULT_QUALITY, MAX_EFFORT

LOSSLESS = "lossless"
LOSSY = "lossy"


@dataclass(frozen=True)
class EncodeProfile:
    """Fully resolved codec parameters, shared by every item of one batch."""

    quality: int = DEFAULT_QUALITY
    lossless: bool = False
    effort: int = DEFAULT_EFFORT
    alpha_quality: Optional[int] = None
    smart_subsampling: bool = True

    def to_pillow_options(self) -> dict:
        """Keyword arguments for ``Image.save(format="WEBP", ...)``."""
        opts: dict = {"method": self.effort}
        if self.lossless:
            opts["lossless"] = True
        else:
            opts["quality"] = self.quality
        if self.alpha_quality is not None:
            opts["alpha_quality"] = self.alpha_quality
        return opts

    def to_dict(self) -> dict:
        return asdict(self)


def _as_int(value: Any, low: int, high: int) -> Optional[int]:
    """Return value as an int in [low, high], or None if it is not a usable number."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if isinstance(value, float):
        if not math.isfinite(value):
            return None
        value = int(round(value))
    if low <= value <= high:
        return value
    return None


def resolve(raw: Any = None) -> EncodeProfile:
    """
    Turn a loosely-typed config into an EncodeProfile. Never raises.
    - quality: 0-100, else DEFAULT_QUALITY.
    - effort: 0-6, else DEFAULT_EFFORT.
    - smartSubsample: on unless exactly False.
    - compressionType == "lossless" selects lossless; quality is still resolved.
    - alphaQuality: when truthy, alpha quality takes the resolved quality.
    """
    if isinstance(raw, ConverterSettings):
        raw = raw.as_raw()
    if not isinstance(raw, Mapping):
        raw = {}

    quality = _as_int(raw.get("quality"), 0, 100)
    if quality is None:
        quality = DEFAULT_QUALITY
    effort = _as_int(raw.get("effort"), 0, MAX_EFFORT)
    if effort is None:
        effort = DEFAULT_EFFORT
    smart = raw.get("smartSubsample", raw.get("smartSubsampling"))

    return EncodeProfile(
        quality=quality,
        lossless=raw.get("compressionType") == LOSSLESS,
        effort=effort,
        alpha_quality=quality if raw.get("alphaQuality") else None,
        smart_subsampling=smart is not False,
    )


@dataclass
class ConverterSettings:
    """Settings panel state. Defaults mirror what the panel shows on first open."""

    quality: int = 100
    compression_type: str = LOSSLESS
    effort: int = MAX_EFFORT
    alpha_quality: bool = True
    smart_subsample: bool = True
    auto_cleanup: bool = True

    def set_quality(self, quality: int) -> None:
        self.quality = quality

    def set_compression_type(self, compression_type: str) -> None:
        self.compression_type = compression_type
        # The quality slider is locked at 100 while lossless is selected
        if compression_type == LOSSLESS:
            self.quality = 100

    def set_effort(self, effort: int) -> None:
        self.effort = effort

    def set_alpha_quality(self, enabled: bool) -> None:
        self.alpha_quality = enabled

    def set_smart_subsample(self, enabled: bool) -> None:
        self.smart_subsample = enabled

    def set_auto_cleanup(self, enabled: bool) -> None:
        self.auto_cleanup = enabled

    def as_raw(self) -> dict:
        """The camelCase mapping the front end sends over the bridge."""
        return {
            "quality": self.quality,
            "compressionType": self.compression_type,
            "effort": self.effort,
            "alphaQuality": self.alpha_quality,
            "smartSubsample": self.smart_subsample,
            "autoCleanup": self.auto_cleanup,
        }
