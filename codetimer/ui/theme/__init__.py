"""Theme system: colors and stylesheet generation."""
from .colors import THEMES
from .stylesheet import build_stylesheet, build_message_stylesheet

__all__ = ["THEMES", "build_stylesheet", "build_message_stylesheet"]
