"""Tests for the ffmpeg-backed media processor."""

import subprocess
from pathlib import Path
from types import MappingProxyType
from unittest.mock import patch

import pytest

from clipstitch.config import Settings
from clipstitch.exceptions import ConcatenationError, EncodingError
from clipstitch.render.fonts import DEFAULT_FONT_FAMILY, FontRegistry
from clipstitch.render.media_processor import EncoderProfile, FFmpegProcessor
from clipstitch.render.transform import build_clip_transform
from clipstitch.schemas.render import ClipDescriptor, TextStyle

FONT_SEARCH_DIRS = ("/usr/share/fonts", "/usr/local/share/fonts", "/Library/Fonts")


@pytest.fixture
def processor() -> FFmpegProcessor:
    return FFmpegProcessor(ffmpeg_path="ffmpeg", encode_timeout=30, concat_timeout=10)


@pytest.fixture
def transform(registry):
    clip = ClipDescriptor(video_url="https://example.com/a.mp4", trim_start=1, trim_duration=2)
    return build_clip_transform(clip, 1080, 1920, registry)


def completed(returncode: int = 0, stderr: str = "") -> subprocess.CompletedProcess:
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout="", stderr=stderr)


class TestEncoderProfile:
    """Tests for EncoderProfile."""

    def test_default_args(self):
        assert EncoderProfile().args() == [
            "-c:v", "libx264",
            "-preset", "fast",
            "-crf", "23",
            "-c:a", "aac",
            "-b:a", "128k",
            "-movflags", "+faststart",
        ]

    def test_from_settings(self):
        settings = Settings(_env_file=None, render_preset="veryfast", render_crf=28)
        profile = EncoderProfile.from_settings(settings)
        assert profile.preset == "veryfast"
        assert profile.crf == 28
        assert profile.video_codec == "libx264"

    def test_profiles_compare_equal(self):
        """Two profiles built from the same settings are identical."""
        settings = Settings(_env_file=None)
        assert EncoderProfile.from_settings(settings) == EncoderProfile.from_settings(settings)


class TestCommands:
    """Tests for ffmpeg argument construction."""

    def test_encode_command(self, processor, transform):
        cmd = processor.build_encode_command(
            Path("/w/clip_0.mp4"), transform, Path("/w/processed_0.mp4"), EncoderProfile()
        )

        assert cmd[:8] == ["ffmpeg", "-y", "-ss", "1", "-t", "2", "-i", "/w/clip_0.mp4"]
        assert cmd[8] == "-vf"
        assert cmd[9] == transform.filter_string
        assert cmd[-1] == "/w/processed_0.mp4"
        assert cmd[10:-1] == EncoderProfile().args()

    def test_encode_command_is_argument_list(self, processor, registry):
        """Overlay text travels as a single argv element, never through a shell."""
        clip = ClipDescriptor(video_url="u", text_overlay="it's 50% off; rm -rf /")
        transform = build_clip_transform(clip, 1080, 1920, registry)
        cmd = processor.build_encode_command(Path("in"), transform, Path("out"), EncoderProfile())

        vf = cmd[cmd.index("-vf") + 1]
        assert vf == transform.filter_string
        assert "rm -rf /" in vf

    def test_concat_command(self, processor):
        cmd = processor.build_concat_command(Path("/w/concat.txt"), Path("/w/output.mp4"))
        assert cmd == [
            "ffmpeg", "-y",
            "-f", "concat",
            "-safe", "0",
            "-i", "/w/concat.txt",
            "-c", "copy",
            "-movflags", "+faststart",
            "/w/output.mp4",
        ]


class TestEncodeClip:
    """Tests for FFmpegProcessor.encode_clip error mapping."""

    @pytest.mark.asyncio
    async def test_success(self, processor, transform, tmp_path):
        with patch("clipstitch.render.media_processor.subprocess.run", return_value=completed()) as mock_run:
            await processor.encode_clip(0, tmp_path / "in.mp4", transform, tmp_path / "out.mp4", EncoderProfile())

        args, kwargs = mock_run.call_args
        assert args[0][0] == "ffmpeg"
        assert kwargs["timeout"] == 30
        assert kwargs["capture_output"] is True

    @pytest.mark.asyncio
    async def test_nonzero_exit(self, processor, transform, tmp_path):
        """A failing ffmpeg run reports the clip index and stderr tail."""
        stderr = "noise\n" * 200 + "Invalid data found when processing input"
        with patch("clipstitch.render.media_processor.subprocess.run", return_value=completed(1, stderr)):
            with pytest.raises(EncodingError) as exc_info:
                await processor.encode_clip(
                    2, tmp_path / "in.mp4", transform, tmp_path / "out.mp4", EncoderProfile()
                )

        error = exc_info.value
        assert error.clip_index == 2
        assert error.message.startswith("Failed to process clip 2")
        assert "Invalid data found" in error.message
        assert len(error.message) < 700

    @pytest.mark.asyncio
    async def test_timeout(self, processor, transform, tmp_path):
        with patch(
            "clipstitch.render.media_processor.subprocess.run",
            side_effect=subprocess.TimeoutExpired(cmd="ffmpeg", timeout=30),
        ):
            with pytest.raises(EncodingError, match="timed out") as exc_info:
                await processor.encode_clip(
                    1, tmp_path / "in.mp4", transform, tmp_path / "out.mp4", EncoderProfile()
                )
        assert exc_info.value.clip_index == 1

    @pytest.mark.asyncio
    async def test_missing_binary(self, transform, tmp_path):
        processor = FFmpegProcessor(ffmpeg_path="/nonexistent/ffmpeg", encode_timeout=5, concat_timeout=5)
        with pytest.raises(EncodingError) as exc_info:
            await processor.encode_clip(0, tmp_path / "in.mp4", transform, tmp_path / "out.mp4", EncoderProfile())
        assert exc_info.value.clip_index == 0


class TestConcat:
    """Tests for FFmpegProcessor.concat error mapping."""

    @pytest.mark.asyncio
    async def test_success(self, processor, tmp_path):
        with patch("clipstitch.render.media_processor.subprocess.run", return_value=completed()) as mock_run:
            await processor.concat(tmp_path / "concat.txt", tmp_path / "output.mp4")
        assert mock_run.call_args.kwargs["timeout"] == 10

    @pytest.mark.asyncio
    async def test_nonzero_exit(self, processor, tmp_path):
        with patch("clipstitch.render.media_processor.subprocess.run", return_value=completed(1, "bad")):
            with pytest.raises(ConcatenationError, match="bad") as exc_info:
                await processor.concat(tmp_path / "concat.txt", tmp_path / "output.mp4")
        assert exc_info.value.clip_index is None

    @pytest.mark.asyncio
    async def test_timeout(self, processor, tmp_path):
        with patch(
            "clipstitch.render.media_processor.subprocess.run",
            side_effect=subprocess.TimeoutExpired(cmd="ffmpeg", timeout=10),
        ):
            with pytest.raises(ConcatenationError, match="timed out"):
                await processor.concat(tmp_path / "concat.txt", tmp_path / "output.mp4")


@pytest.mark.requires_ffmpeg
class TestFFmpegIntegration:
    """Runs the real binary against tiny generated clips."""

    @staticmethod
    def make_clip(path: Path, color: str, size: str = "320x240") -> None:
        subprocess.run(
            [
                "ffmpeg", "-y",
                "-f", "lavfi", "-i", f"color=c={color}:s={size}:d=1",
                "-f", "lavfi", "-i", "anullsrc=r=44100:cl=stereo",
                "-shortest",
                "-c:v", "libx264", "-c:a", "aac",
                str(path),
            ],
            capture_output=True,
            check=True,
        )

    @pytest.mark.asyncio
    async def test_encode_and_concat(self, tmp_path, registry):
        processor = FFmpegProcessor(ffmpeg_path="ffmpeg", encode_timeout=60, concat_timeout=60)
        profile = EncoderProfile(preset="ultrafast")
        processed = []
        for index, (color, size) in enumerate([("red", "320x240"), ("blue", "240x320")]):
            source = tmp_path / f"clip_{index}.mp4"
            self.make_clip(source, color, size)
            output = tmp_path / f"processed_{index}.mp4"
            transform = build_clip_transform(ClipDescriptor(video_url="u"), 180, 320, registry)
            await processor.encode_clip(index, source, transform, output, profile)
            processed.append(output)

        manifest = tmp_path / "concat.txt"
        manifest.write_text("".join(f"file '{p}'\n" for p in processed))
        output = tmp_path / "output.mp4"
        await processor.concat(manifest, output)

        assert output.stat().st_size > 0

    @pytest.fixture
    def drawtext_registry(self) -> FontRegistry:
        """Registry pointing at any installed TrueType font; skips without drawtext support."""
        filters = subprocess.run(["ffmpeg", "-hide_banner", "-filters"], capture_output=True, text=True)
        if " drawtext " not in filters.stdout:
            pytest.skip("ffmpeg built without drawtext")
        for root in FONT_SEARCH_DIRS:
            if Path(root).is_dir():
                fonts = sorted(Path(root).rglob("*.ttf"))
                if fonts:
                    return FontRegistry(font_files=MappingProxyType({DEFAULT_FONT_FAMILY: str(fonts[0])}))
        pytest.skip("no TrueType font installed")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "text,style",
        [
            ("It's 5:30, 100% C:\\dir \\d", TextStyle()),
            ("Don't stop", TextStyle(has_emoji=True, emoji="🔥", emoji_position="both", position="top")),
            ("a, b; [c]", TextStyle(position="center", color="#FF000080")),
        ],
    )
    async def test_encode_with_text_overlay(self, tmp_path, drawtext_registry, text, style):
        processor = FFmpegProcessor(ffmpeg_path="ffmpeg", encode_timeout=60, concat_timeout=60)
        source = tmp_path / "clip_0.mp4"
        self.make_clip(source, "green")
        output = tmp_path / "processed_0.mp4"
        clip = ClipDescriptor(video_url="u", text_overlay=text, text_style=style, trim_duration=0.5)
        transform = build_clip_transform(clip, 180, 320, drawtext_registry)

        await processor.encode_clip(0, source, transform, output, EncoderProfile(preset="ultrafast"))

        assert output.stat().st_size > 0
