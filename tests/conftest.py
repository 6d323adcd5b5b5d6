"""
Pytest fixtures for clipstitch tests.

Most tests run the render pipeline against ``FakeMediaProcessor`` instead of
a real ffmpeg binary. Tests that do need ffmpeg are marked with
@pytest.mark.requires_ffmpeg and skipped when it is not installed.
"""

import base64
import re
import shutil
from pathlib import Path

import httpx
import pytest

from clipstitch.config import Settings
from clipstitch.exceptions import ConcatenationError, EncodingError
from clipstitch.render.acquirer import ClipAcquirer
from clipstitch.render.fonts import FontRegistry
from clipstitch.render.media_processor import EncoderProfile, MediaProcessor
from clipstitch.render.pipeline import RenderPipeline
from clipstitch.render.transform import ClipTransform

FONT_DIR = "/fonts"

requires_ffmpeg = pytest.mark.skipif(
    shutil.which("ffmpeg") is None,
    reason="ffmpeg not installed",
)


def pytest_collection_modifyitems(config, items):
    for item in items:
        if "requires_ffmpeg" in item.keywords:
            item.add_marker(requires_ffmpeg)


class FakeMediaProcessor(MediaProcessor):
    """Stand-in for ffmpeg: 'encodes' by tagging bytes, 'concats' by joining files."""

    def __init__(
        self,
        fail_encode_at: int | None = None,
        skip_output_at: int | None = None,
        fail_concat: bool = False,
        skip_concat_output: bool = False,
    ):
        self.fail_encode_at = fail_encode_at
        self.skip_output_at = skip_output_at
        self.fail_concat = fail_concat
        self.skip_concat_output = skip_concat_output
        self.encode_calls: list[dict] = []
        self.concat_calls: list[dict] = []

    async def encode_clip(
        self,
        index: int,
        input_path: Path,
        transform: ClipTransform,
        output_path: Path,
        profile: EncoderProfile,
    ) -> None:
        self.encode_calls.append({
            "index": index,
            "input_path": input_path,
            "transform": transform,
            "output_path": output_path,
            "profile": profile,
        })
        if index == self.fail_encode_at:
            raise EncodingError(f"Failed to process clip {index}: boom", clip_index=index)
        if index == self.skip_output_at:
            return
        output_path.write_bytes(b"[" + input_path.read_bytes() + b"]")

    async def concat(self, manifest_path: Path, output_path: Path) -> None:
        lines = manifest_path.read_text(encoding="utf-8").splitlines()
        self.concat_calls.append({"manifest": lines, "output_path": output_path})
        if self.fail_concat:
            raise ConcatenationError("Concatenation failed: boom")
        if self.skip_concat_output:
            return
        paths = [line[len("file '"):-1] for line in lines]
        output_path.write_bytes(b"".join(Path(p).read_bytes() for p in paths))


WHITESPACES = " \n\t\r"
OPTION_KEY_PATTERN = re.compile(r"[A-Za-z0-9_\-/.]+=")


def ffmpeg_get_token(buf: str, terms: str) -> tuple[str, str]:
    """Port of libavutil's av_get_token(). Returns (token, unparsed rest)."""
    i = 0
    while i < len(buf) and buf[i] in WHITESPACES:
        i += 1
    out: list[str] = []
    end = 0
    while i < len(buf) and buf[i] not in terms:
        c = buf[i]
        i += 1
        if c == "\\" and i < len(buf):
            out.append(buf[i])
            i += 1
            end = len(out)
        elif c == "'":
            while i < len(buf) and buf[i] != "'":
                out.append(buf[i])
                i += 1
            if i < len(buf):
                i += 1
                end = len(out)
        else:
            out.append(c)
    while len(out) > end and out[-1] in WHITESPACES:
        out.pop()
    return "".join(out), buf[i:]


def parse_filter_options(args: str) -> dict[str, str]:
    """Option-level split of one filter's arguments; positional values get keys "0", "1", ..."""
    options: dict[str, str] = {}
    position = 0
    while args:
        match = OPTION_KEY_PATTERN.match(args)
        if match:
            key = match.group(0)[:-1]
            args = args[match.end():]
        else:
            key = str(position)
            position += 1
        options[key], args = ffmpeg_get_token(args, ":")
        if args.startswith(":"):
            args = args[1:]
    return options


def parse_filter_chain(chain: str) -> list[tuple[str, dict[str, str]]]:
    """Split a -vf value the way ffmpeg does: graph level first, then options."""
    filters = []
    rest = chain
    while rest:
        name, rest = ffmpeg_get_token(rest, "=,;[")
        args = ""
        if rest.startswith("="):
            args, rest = ffmpeg_get_token(rest[1:], "[],;")
        filters.append((name, parse_filter_options(args)))
        if rest and not rest.startswith(","):
            raise ValueError(f"Unexpected filtergraph input: {rest!r}")
        rest = rest[1:]
    return filters


def b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def url_transport(routes: dict[str, tuple[int, bytes]]) -> httpx.MockTransport:
    """MockTransport answering ``routes[url] = (status, body)``; 404 otherwise."""

    def handler(request: httpx.Request) -> httpx.Response:
        status, body = routes.get(str(request.url), (404, b"not found"))
        return httpx.Response(status, content=body)

    return httpx.MockTransport(handler)


@pytest.fixture
def workspace_root(tmp_path) -> Path:
    root = tmp_path / "workspaces"
    root.mkdir()
    return root


@pytest.fixture
def test_settings(workspace_root) -> Settings:
    return Settings(
        _env_file=None,
        workspace_root=str(workspace_root),
        font_dir=FONT_DIR,
        require_ffmpeg=False,
    )


@pytest.fixture
def registry() -> FontRegistry:
    return FontRegistry.from_directory(FONT_DIR)


@pytest.fixture
def fake_processor() -> FakeMediaProcessor:
    return FakeMediaProcessor()


@pytest.fixture
def make_pipeline(test_settings, registry):
    """Build a pipeline wired to fakes: make_pipeline(processor=..., routes=...)."""

    def _make(
        processor: MediaProcessor | None = None,
        routes: dict[str, tuple[int, bytes]] | None = None,
        settings: Settings | None = None,
    ) -> RenderPipeline:
        acquirer = ClipAcquirer(timeout=5.0, transport=url_transport(routes or {}))
        return RenderPipeline(
            processor=processor or FakeMediaProcessor(),
            acquirer=acquirer,
            registry=registry,
            settings=settings or test_settings,
        )

    return _make
