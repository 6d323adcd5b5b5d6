"""Font registry: logical font family name -> font file on disk.

The table is fixed at import time. Lookups of unknown families resolve to
the default family instead of failing.
"""

import os
from dataclasses import dataclass
from functools import lru_cache
from types import MappingProxyType
from typing import Mapping

from clipstitch.config import get_settings

DEFAULT_FONT_FAMILY = "Poppins"

FONT_FILE_NAMES: Mapping[str, str] = MappingProxyType({
    "Poppins": "Poppins-Bold.ttf",
    "Poppins-SemiBold": "Poppins-SemiBold.ttf",
    "Montserrat": "Montserrat-Bold.ttf",
    "Playfair Display": "PlayfairDisplay-Bold.ttf",
    "Dancing Script": "DancingScript-Bold.ttf",
    "Bebas Neue": "BebasNeue-Regular.ttf",
    "Oswald": "Oswald-Bold.ttf",
    "Anton": "Anton-Regular.ttf",
})


@dataclass(frozen=True)
class FontRegistry:
    """Read-only lookup of font files with a default fallback."""

    font_files: Mapping[str, str]
    default_family: str = DEFAULT_FONT_FAMILY

    def __post_init__(self) -> None:
        if self.default_family not in self.font_files:
            raise ValueError(f"Default font family not registered: {self.default_family}")

    @classmethod
    def from_directory(cls, font_dir: str) -> "FontRegistry":
        files = {family: os.path.join(font_dir, name) for family, name in FONT_FILE_NAMES.items()}
        return cls(font_files=MappingProxyType(files))

    def families(self) -> list[str]:
        return list(self.font_files)

    def resolve(self, family: str | None) -> str:
        """Return the font file for ``family``, or the default family's file."""
        if family and family in self.font_files:
            return self.font_files[family]
        return self.font_files[self.default_family]


@lru_cache
def get_font_registry() -> FontRegistry:
    return FontRegistry.from_directory(get_settings().font_dir)
