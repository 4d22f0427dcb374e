from __future__ import annotations

from pathlib import Path
from typing import Mapping
import zipfile

from .errors import TemplateLoadError


class Resources(dict[str, bytes]):
    """Static template resources keyed by name (zip members, inline strings)."""

    def load_string_map(self, values: Mapping[str, str] | None) -> None:
        if not values:
            return
        for key, value in values.items():
            self[key] = value.encode("utf-8")

    def load_zip_file(self, path: str | Path) -> None:
        try:
            with zipfile.ZipFile(path) as archive:
                self._load_archive(archive)
        except (OSError, zipfile.BadZipFile) as exc:
            raise TemplateLoadError(f"cannot read resource bundle {path}: {exc}") from exc

    def _load_archive(self, archive: zipfile.ZipFile) -> None:
        for info in archive.infolist():
            if info.is_dir():
                continue
            self[info.filename] = archive.read(info)
