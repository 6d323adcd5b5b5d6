"""Small intermediate representation for ffmpeg filter chains.

Filter stages are built as lists of typed parameters and only turned into
filtergraph syntax by ``serialize()``. Text escaping happens there and
nowhere else.

ffmpeg unescapes a filter argument twice: once when the filtergraph is
split into filters, and again when the filter's options are split on
``:``. Literal values are therefore escaped for the option level and then
wrapped in single quotes for the graph level.
"""

from dataclasses import dataclass, field

# Closes the graph-level quote, emits ``\'`` for the option parser, reopens.
QUOTE_ESCAPE = "'\\\\\\''"


def escape_filter_text(text: str) -> str:
    """Escape literal text for the body of a single-quoted filter value.

    Order matters: backslashes first so the escapes added afterwards are not
    doubled again.
    """
    return (
        text.replace("\\", "\\\\")
        .replace("'", QUOTE_ESCAPE)
        .replace(":", "\\:")
        .replace("%", "\\%")
    )


def quote_filter_text(text: str) -> str:
    return f"'{escape_filter_text(text)}'"


@dataclass(frozen=True)
class FilterParam:
    """One ``key=value`` (or positional ``value``) filter option."""

    value: str | int | float
    key: str | None = None
    literal_text: bool = False  # escape + quote user supplied text or paths

    def serialize(self) -> str:
        value = str(self.value)
        if self.literal_text:
            value = quote_filter_text(value)
        if self.key is None:
            return value
        return f"{self.key}={value}"


@dataclass(frozen=True)
class FilterStage:
    """A single filter, e.g. ``scale``, ``pad`` or ``drawtext``."""

    name: str
    params: tuple[FilterParam, ...] = ()

    def param(self, key: str) -> FilterParam | None:
        """Look up a named parameter (mostly useful in tests and logging)."""
        for p in self.params:
            if p.key == key:
                return p
        return None

    def serialize(self) -> str:
        if not self.params:
            return self.name
        return f"{self.name}=" + ":".join(p.serialize() for p in self.params)


@dataclass
class FilterChain:
    """Ordered, comma-joined sequence of filter stages for ``-vf``."""

    stages: list[FilterStage] = field(default_factory=list)

    def append(self, stage: FilterStage) -> "FilterChain":
        self.stages.append(stage)
        return self

    def extend(self, stages: list[FilterStage]) -> "FilterChain":
        self.stages.extend(stages)
        return self

    @property
    def names(self) -> list[str]:
        return [stage.name for stage in self.stages]

    def serialize(self) -> str:
        return ",".join(stage.serialize() for stage in self.stages)

    def __len__(self) -> int:
        return len(self.stages)
