import json
from functools import lru_cache

from pydantic import computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Application
    app_name: str = "Clipstitch API"
    app_version: str = "1.1.0"
    service_name: str = "template-api"
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 3847

    # CORS - stored as string, parsed via computed property
    cors_origins_raw: str = "*"

    @computed_field
    @property
    def cors_origins(self) -> list[str]:
        """Parse CORS origins from pipe/comma-separated string or JSON array."""
        v = self.cors_origins_raw
        if v.startswith("["):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                pass
        if "|" in v:
            return [origin.strip() for origin in v.split("|") if origin.strip()]
        return [origin.strip() for origin in v.split(",") if origin.strip()]

    # External executables
    ffmpeg_path: str = "ffmpeg"
    ytdlp_path: str = "yt-dlp"
    require_ffmpeg: bool = True  # Refuse to start without ffmpeg

    # Fonts
    font_dir: str = "/usr/share/fonts/googlefonts"

    # Render canvas
    render_output_width: int = 1080
    render_output_height: int = 1920

    # Per-clip codec profile. Must be identical for every clip of a job,
    # otherwise the stream-copy concat produces a broken file.
    render_video_codec: str = "libx264"
    render_preset: str = "fast"
    render_crf: int = 23
    render_audio_codec: str = "aac"
    render_audio_bitrate: str = "128k"

    # Workspace (empty = system temp dir)
    workspace_root: str = ""

    # Timeouts in seconds
    fetch_timeout_s: float = 120.0
    encode_timeout_s: float = 600.0
    concat_timeout_s: float = 300.0

    # Per-job parallelism (1 = strictly sequential)
    acquire_concurrency: int = 1
    encode_concurrency: int = 1

    # Request limits
    max_clips: int = 100

    # Template extraction
    openai_api_key: str = ""
    openai_model: str = "gpt-4o"
    openai_max_tokens: int = 4096
    openai_timeout_s: float = 180.0
    extract_frame_fps: int = 1


@lru_cache
def get_settings() -> Settings:
    return Settings()
