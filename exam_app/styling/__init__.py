"""Styling module for the ExamQt console."""

from .color_palette import ColorPalette, Theme

__all__ = ["ColorPalette", "Theme"]
