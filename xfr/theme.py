"""Built-in colour themes for the terminal interface."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Tuple, Union

# A colour is either a named terminal colour or an (r, g, b) triple.
Color = Union[str, Tuple[int, int, int]]


@dataclass(frozen=True)
class Theme:
    """Every themeable colour in the interface."""

    name: str
    border: Color
    border_focused: Color
    text: Color
    text_dim: Color
    highlight_bg: Color
    success: Color
    warning: Color
    error: Color
    accent: Color
    header: Color
    graph_primary: Color
    graph_secondary: Color

    @classmethod
    def by_name(cls, name: str) -> "Theme":
        """Look up a theme by name or alias, case-insensitively.

        Unknown names give the default theme.
        """
        key = name.lower()
        key = _ALIASES.get(key, key)
        return _THEMES.get(key, _THEMES["default"])

    @classmethod
    def names(cls) -> Tuple[str, ...]:
        """Names of all built-in themes, in display order."""
        return tuple(_THEMES)

    @classmethod
    def default_theme(cls) -> "Theme":
        return _THEMES["default"]


def _theme(name, border, text, text_dim, highlight_bg, success, warning, error,
           accent, header, graph_primary, graph_secondary) -> Theme:
    return Theme(
        name=name,
        border=border,
        border_focused=border,
        text=text,
        text_dim=text_dim,
        highlight_bg=highlight_bg,
        success=success,
        warning=warning,
        error=error,
        accent=accent,
        header=header,
        graph_primary=graph_primary,
        graph_secondary=graph_secondary,
    )


_THEMES: Dict[str, Theme] = {
    theme.name: theme
    for theme in (
        _theme("default", "cyan", "white", "gray", "dark_gray",
               "green", "yellow", "red", "yellow", "cyan", "green", "cyan"),
        _theme("kawaii", (255, 182, 214), (255, 255, 255), (180, 180, 200), (60, 50, 70),
               (152, 255, 200), (255, 200, 152), (255, 121, 162),
               (214, 182, 255), (255, 182, 214), (152, 255, 200), (255, 182, 214)),
        _theme("cyber", (0, 255, 255), (255, 255, 255), (100, 100, 120), (20, 20, 35),
               (0, 255, 150), (255, 200, 0), (255, 50, 100),
               (255, 0, 255), (0, 255, 255), (0, 255, 150), (0, 255, 255)),
        _theme("dracula", (189, 147, 249), (248, 248, 242), (98, 114, 164), (68, 71, 90),
               (80, 250, 123), (255, 184, 108), (255, 85, 85),
               (241, 250, 140), (255, 121, 198), (80, 250, 123), (189, 147, 249)),
        _theme("monochrome", (200, 200, 200), (255, 255, 255), (120, 120, 120), (50, 50, 50),
               (200, 200, 200), (170, 170, 170), (255, 255, 255),
               (200, 200, 200), (255, 255, 255), (200, 200, 200), (150, 150, 150)),
        _theme("matrix", (0, 255, 0), (0, 255, 0), (0, 100, 0), (0, 20, 0),
               (0, 255, 0), (200, 255, 100), (255, 100, 100),
               (100, 255, 100), (0, 255, 0), (0, 255, 0), (0, 200, 0)),
        _theme("nord", (136, 192, 208), (236, 239, 244), (76, 86, 106), (59, 66, 82),
               (163, 190, 140), (235, 203, 139), (191, 97, 106),
               (235, 203, 139), (136, 192, 208), (163, 190, 140), (136, 192, 208)),
        _theme("gruvbox", (254, 128, 25), (235, 219, 178), (146, 131, 116), (80, 73, 69),
               (184, 187, 38), (250, 189, 47), (251, 73, 52),
               (250, 189, 47), (254, 128, 25), (184, 187, 38), (254, 128, 25)),
        _theme("catppuccin", (203, 166, 247), (205, 214, 244), (108, 112, 134), (88, 91, 112),
               (166, 227, 161), (249, 226, 175), (243, 139, 168),
               (249, 226, 175), (245, 194, 231), (166, 227, 161), (203, 166, 247)),
        _theme("tokyo_night", (187, 154, 247), (192, 202, 245), (86, 95, 137), (59, 66, 97),
               (158, 206, 106), (224, 175, 104), (247, 118, 142),
               (224, 175, 104), (187, 154, 247), (158, 206, 106), (187, 154, 247)),
        _theme("solarized", (42, 161, 152), (131, 148, 150), (88, 110, 117), (7, 54, 66),
               (133, 153, 0), (181, 137, 0), (220, 50, 47),
               (181, 137, 0), (203, 75, 22), (133, 153, 0), (42, 161, 152)),
    )
}

_ALIASES: Dict[str, str] = {
    "futuristic": "cyber",
    "mono": "monochrome",
    "hacker": "matrix",
    "mocha": "catppuccin",
    "tokyo": "tokyo_night",
    "tokyonight": "tokyo_night",
}