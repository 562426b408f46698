"""Configuration loaded from environment variables."""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


def _int(name: str, default: int) -> int:
    val = os.getenv(name)
    if not val:
        return default
    try:
        return int(val)
    except ValueError:
        raise RuntimeError(f"Environment variable {name} must be an integer, got {val!r}")


# Fonts
FONT_FAMILY: str = os.getenv("FONT_FAMILY", "DejaVuSans")
FONT_PATH: Path | None = Path(os.environ["FONT_PATH"]) if os.getenv("FONT_PATH") else None
FONT_SIZE: int = _int("FONT_SIZE", 12)

# Theme: light, dark or auto
THEME: str = os.getenv("THEME", "auto").lower()

# Layout
LINE_HEIGHT: int = _int("LINE_HEIGHT", 20)
MIN_BLOCK_WIDTH: int = _int("MIN_BLOCK_WIDTH", 250)
MAX_BLOCK_WIDTH: int = _int("MAX_BLOCK_WIDTH", 500)
OUTER_PADDING: int = _int("OUTER_PADDING", 20)

# Live refresh
REFRESH_DELAY_MS: int = _int("REFRESH_DELAY_MS", 300)

# Server
HOST: str = os.getenv("HOST", "0.0.0.0")
PORT: int = _int("PORT", 8000)
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()


def resolve_theme(name: str | None = None) -> str:
    """Return a concrete theme name ("light" or "dark").

    "auto" follows the THEME setting and falls back to light when that is
    also "auto", since there is no host to ask.
    """
    name = (name or THEME).lower()
    if name == "auto":
        name = THEME if THEME in ("light", "dark") else "light"
    if name not in ("light", "dark"):
        raise ValueError(f"Unknown theme {name!r}")
    return name
