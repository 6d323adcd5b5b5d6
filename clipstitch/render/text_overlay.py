"""Text overlay compiler: overlay text + style -> ``drawtext`` filter stage.

Steps, in order:
1. Affix the emoji to the raw text (before/after/both)
2. Resolve the font file through the font registry
3. Compute the vertical position from the style's position name
4. Emit the stage; escaping is applied when the chain is serialized
"""

import logging

from clipstitch.render.filters import FilterParam, FilterStage
from clipstitch.render.fonts import FontRegistry, get_font_registry
from clipstitch.schemas.render import TextStyle

logger = logging.getLogger(__name__)

# Drop shadow is part of the house style and not configurable per clip.
SHADOW_COLOR = "black@0.7"
SHADOW_OFFSET = 2

TOP_MARGIN = 50
BOTTOM_MARGIN = 80

CENTERED_X = "(w-text_w)/2"


def apply_emoji(text: str, style: TextStyle) -> str:
    """Prepend and/or append the style's emoji, separated by a single space."""
    if not (style.has_emoji and style.emoji):
        return text

    display_text = text
    if style.emoji_position in ("before", "both"):
        display_text = f"{style.emoji} {display_text}"
    if style.emoji_position in ("after", "both"):
        display_text = f"{display_text} {style.emoji}"
    return display_text


def text_y_expr(position: str | None, font_size: int) -> str:
    """Vertical placement for drawtext. Anything unrecognized renders at the bottom."""
    if position == "top":
        return str(font_size + TOP_MARGIN)
    if position == "center":
        return "(h-text_h)/2"
    return f"h-{font_size + BOTTOM_MARGIN}"


def strip_color(color: str) -> str:
    return color[1:] if color.startswith("#") else color


def build_text_stage(
    text: str | None,
    style: TextStyle | None = None,
    registry: FontRegistry | None = None,
) -> FilterStage | None:
    """Compile a drawtext stage, or None when there is no text to draw."""
    if not text or not text.strip():
        return None

    style = style or TextStyle()
    registry = registry or get_font_registry()

    display_text = apply_emoji(text, style)
    font_file = registry.resolve(style.font_family)
    if style.font_family not in registry.font_files:
        logger.debug(f"[TEXT] Unknown font family {style.font_family!r}, using {registry.default_family}")

    return FilterStage(
        "drawtext",
        (
            FilterParam(display_text, key="text", literal_text=True),
            # Text is drawn verbatim, without %{...} or \ sequence expansion
            FilterParam("none", key="expansion"),
            FilterParam(font_file, key="fontfile", literal_text=True),
            FilterParam(style.font_size, key="fontsize"),
            FilterParam(strip_color(style.color), key="fontcolor"),
            FilterParam(CENTERED_X, key="x"),
            FilterParam(text_y_expr(style.position, style.font_size), key="y"),
            FilterParam(SHADOW_COLOR, key="shadowcolor"),
            FilterParam(SHADOW_OFFSET, key="shadowx"),
            FilterParam(SHADOW_OFFSET, key="shadowy"),
        ),
    )


def compile_text_overlay(
    text: str,
    style: TextStyle | None = None,
    registry: FontRegistry | None = None,
) -> str:
    """Filtergraph fragment for ``text``; empty string when there is nothing to draw."""
    stage = build_text_stage(text, style, registry)
    return stage.serialize() if stage else ""
