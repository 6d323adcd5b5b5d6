"""Per-clip transform: canvas fit + optional text, and input-side trim options."""

from dataclasses import dataclass, field

from clipstitch.render.filters import FilterChain, FilterParam, FilterStage
from clipstitch.render.fonts import FontRegistry
from clipstitch.render.text_overlay import build_text_stage
from clipstitch.schemas.render import ClipDescriptor

PAD_COLOR = "black"


@dataclass
class ClipTransform:
    """Everything the encoder needs to know about one clip besides its path."""

    input_options: list[str] = field(default_factory=list)
    filter_chain: FilterChain = field(default_factory=FilterChain)

    @property
    def filter_string(self) -> str:
        return self.filter_chain.serialize()


def format_seconds(value: float) -> str:
    """Render seconds for the command line without a trailing ``.0``."""
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def canvas_fit_stages(width: int, height: int) -> list[FilterStage]:
    """Scale down to fit inside width x height, then pad centered to exactly that size."""
    return [
        FilterStage(
            "scale",
            (
                FilterParam(width),
                FilterParam(height),
                FilterParam("decrease", key="force_original_aspect_ratio"),
            ),
        ),
        FilterStage(
            "pad",
            (
                FilterParam(width),
                FilterParam(height),
                FilterParam("(ow-iw)/2"),
                FilterParam("(oh-ih)/2"),
                FilterParam(PAD_COLOR),
            ),
        ),
    ]


def build_input_options(clip: ClipDescriptor) -> list[str]:
    """Seek and duration options placed before ``-i``.

    ``trim_duration`` wins over the generic ``duration``; with neither the
    whole remaining stream is used.
    """
    options: list[str] = []
    if clip.trim_start is not None:
        options.extend(["-ss", format_seconds(clip.trim_start)])
    if clip.trim_duration is not None:
        options.extend(["-t", format_seconds(clip.trim_duration)])
    elif clip.duration:
        options.extend(["-t", format_seconds(clip.duration)])
    return options


def build_filter_chain(
    clip: ClipDescriptor,
    width: int,
    height: int,
    registry: FontRegistry | None = None,
) -> FilterChain:
    chain = FilterChain().extend(canvas_fit_stages(width, height))
    if clip.has_text_overlay:
        text_stage = build_text_stage(clip.text_overlay, clip.text_style, registry)
        if text_stage is not None:
            chain.append(text_stage)
    return chain


def build_clip_transform(
    clip: ClipDescriptor,
    width: int,
    height: int,
    registry: FontRegistry | None = None,
) -> ClipTransform:
    return ClipTransform(
        input_options=build_input_options(clip),
        filter_chain=build_filter_chain(clip, width, height, registry),
    )
