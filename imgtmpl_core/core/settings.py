from __future__ import annotations

from dataclasses import dataclass
import logging
import os
from pathlib import Path
from typing import Mapping


DEFAULT_IMAGE_CACHE_DIR = "data/cache/image"
DEFAULT_IMAGE_CACHE_SIZE = 256
DEFAULT_FONT_DIR = "data/fonts"
PACKAGE_LOGGERS = ("imgtmpl_core", "imgtmpl_ui")

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class RenderSettings:
    """Process-wide knobs. Build once, before the first render."""

    image_cache_dir: Path = Path(DEFAULT_IMAGE_CACHE_DIR)
    image_cache_size: int = DEFAULT_IMAGE_CACHE_SIZE
    image_cache_save_local: bool = False
    font_dir: Path = Path(DEFAULT_FONT_DIR)
    verbose: bool = False

    def __post_init__(self) -> None:
        if self.image_cache_size <= 0:
            raise ValueError("image_cache_size must be > 0")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "RenderSettings":
        env = os.environ if environ is None else environ
        return cls(
            image_cache_dir=Path(env.get("IMGTMPL_IMAGE_CACHE_DIR", DEFAULT_IMAGE_CACHE_DIR)),
            image_cache_size=int(env.get("IMGTMPL_IMAGE_CACHE_SIZE", str(DEFAULT_IMAGE_CACHE_SIZE))),
            image_cache_save_local=_env_flag(env.get("IMGTMPL_IMAGE_CACHE_SAVE_LOCAL", "0")),
            font_dir=Path(env.get("IMGTMPL_FONT_DIR", DEFAULT_FONT_DIR)),
            verbose=_env_flag(env.get("IMGTMPL_VERBOSE", "0")),
        )


def enable_verbose_logging(enabled: bool = True) -> None:
    """Raise (or restore) package loggers to DEBUG. Diagnostic only."""
    level = logging.DEBUG if enabled else logging.NOTSET
    for name in PACKAGE_LOGGERS:
        logging.getLogger(name).setLevel(level)


def _env_flag(raw: str) -> bool:
    return raw.strip().lower() in _TRUTHY
