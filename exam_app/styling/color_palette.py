"""Color palette for the ExamQt console supporting light and dark themes."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto


class Theme(Enum):
    """Application theme options."""
    LIGHT = auto()
    DARK = auto()


@dataclass(frozen=True)
class ThemeColors:
    """Color definitions for a specific theme."""
    light: str
    dark: str

    def get(self, theme: Theme) -> str:
        """Get color value for the specified theme."""
        return self.light if theme == Theme.LIGHT else self.dark


class ColorPalette:
    """Centralized color definitions for the application."""

    # Text colors
    TEXT_PRIMARY = ThemeColors(light="#0F172A", dark="#F1F5F9")
    TEXT_SECONDARY = ThemeColors(light="#475569", dark="#94A3B8")

    # Background colors
    BACKGROUND_PRIMARY = ThemeColors(light="#FFFFFF", dark="#1E1E1E")
    BACKGROUND_SECONDARY = ThemeColors(light="#F1F5F9", dark="#2D2D2D")

    # Border colors
    BORDER_PRIMARY = ThemeColors(light="#CBD5E1", dark="#555555")

    # Button colors
    BUTTON_PRIMARY_BG = ThemeColors(light="#1E40AF", dark="#60A5FA")
    BUTTON_PRIMARY_TEXT = ThemeColors(light="#FFFFFF", dark="#000000")
    BUTTON_SECONDARY_BG = ThemeColors(light="#F1F5F9", dark="#3A3A3A")
    BUTTON_HOVER_BG = ThemeColors(light="#E2E8F0", dark="#505050")

    # Timer warning levels (normal / warning / danger)
    TIMER_NORMAL = ThemeColors(light="#1E40AF", dark="#93C5FD")
    TIMER_WARNING = ThemeColors(light="#92400E", dark="#FCD34D")
    TIMER_DANGER = ThemeColors(light="#B91C1C", dark="#FCA5A5")

    # Performance bands on the review page
    BAND_STRONG = ThemeColors(light="#15803D", dark="#86EFAC")
    BAND_GOOD = ThemeColors(light="#1E40AF", dark="#93C5FD")
    BAND_FAIR = ThemeColors(light="#92400E", dark="#FCD34D")
    BAND_WEAK = ThemeColors(light="#B91C1C", dark="#FCA5A5")

    @classmethod
    def for_warning_level(cls, level: str) -> ThemeColors:
        return {
            "warning": cls.TIMER_WARNING,
            "danger": cls.TIMER_DANGER,
        }.get(level, cls.TIMER_NORMAL)

    @classmethod
    def for_band(cls, band: str) -> ThemeColors:
        return {
            "strong": cls.BAND_STRONG,
            "good": cls.BAND_GOOD,
            "fair": cls.BAND_FAIR,
        }.get(band, cls.BAND_WEAK)
