"""
config.py — Central configuration for the slide templater.
Loads settings from environment variables / .env file.
"""

from pathlib import Path
from typing import Tuple

from pydantic import Field
from pydantic_settings import BaseSettings


# ── Project Paths ──────────────────────────────────────────────
ROOT_DIR = Path(__file__).resolve().parent
DATA_DIR = ROOT_DIR / "data"
LOG_DIR = DATA_DIR / "logs"


# ── Application Settings ──────────────────────────────────────
class Settings(BaseSettings):
    """Typed templater settings, loaded from env vars / .env file."""

    # --- Logging ---
    log_level: str = Field(
        default="INFO",
        description="Minimum level for the console sink",
    )
    log_to_file: bool = Field(
        default=False,
        description="Also write a rotating log file under log_dir",
    )
    log_dir: Path = Field(default=LOG_DIR)

    # --- Pictures ---
    default_image_content_type: str = Field(
        default="image/png",
        description="Content type used when a picture's type is not recognised",
    )
    strict_image_types: bool = Field(
        default=False,
        description="Reject unrecognised picture content types instead of falling back",
    )

    # --- Substitution ---
    apply_underline: bool = Field(
        default=False,
        description="Propagate Cell.underline onto substituted runs",
    )

    # --- Document handling ---
    autosave: bool = Field(
        default=True,
        description="Write an editable document back to its source on close",
    )
    thumbnail_size: Tuple[int, int] = Field(
        default=(256, 192),
        description="Default (width, height) of generated thumbnails in pixels",
    )

    model_config = {
        "env_prefix": "TEMPLATER_",
        "env_file": str(ROOT_DIR / ".env"),
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
    }


def get_settings() -> Settings:
    """Factory that loads and returns validated settings."""
    return Settings()
