from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", env_prefix="NARRATOR_", extra="ignore"
    )

    # Logging
    log_level: str = "INFO"

    # FFmpeg
    ffmpeg_path: str = "ffmpeg"
    ffprobe_path: str = "ffprobe"

    # Render settings
    render_fps: int = 30
    # Element font sizes, stroke widths and image sizes are authored against this height
    reference_height: int = 500
    # Karaoke subtitle font size is authored against this height
    subtitle_reference_height: int = 720
    subtitle_font_size: int = 32
    render_video_bitrate: str = "10M"
    cta_video_bitrate: str = "8M"
    render_audio_bitrate: str = "192k"
    render_audio_sample_rate: int = 48000
    seek_timeout_s: float = 5.0
    probe_timeout_s: float = 30.0

    # Narration
    tts_sample_rate: int = 24000
    tts_channels: int = 1
    native_language: str = "pt"
    default_voice: str = "Zephyr"
    default_end_padding_s: float = 3.0
    default_subtitle_anchor_x: float = 50.0
    default_subtitle_anchor_y: float = 95.0
    assembly_max_concurrency: int = 3

    # Gemini (translation + speech synthesis)
    gemini_api_key: str = ""
    gemini_api_base: str = "https://generativelanguage.googleapis.com/v1beta"
    translation_model: str = "gemini-2.5-flash"
    tts_model: str = "gemini-2.5-flash-preview-tts"
    ai_request_timeout_s: float = 120.0

    # Output
    export_output_dir: str = "/tmp/narrator-exports"
    work_dir_prefix: str = "narrator_export_"


@lru_cache
def get_settings() -> Settings:
    return Settings()
