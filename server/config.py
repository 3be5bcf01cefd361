# server/config.py
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import FrozenSet, List, Optional

from dotenv import load_dotenv

load_dotenv()

BASE_DIR = Path(__file__).resolve().parents[1]

OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")

# Model routing
CHAT_MODEL = os.getenv("CHAT_MODEL", "gpt-4o-mini")
IMAGE_MODEL = os.getenv("IMAGE_MODEL", "gpt-image-1")
IMAGE_SIZE = os.getenv("IMAGE_SIZE", "1024x1024")
CHAT_TEMPERATURE = float(os.getenv("CHAT_TEMPERATURE", "0.8"))
CHAT_TOP_P = float(os.getenv("CHAT_TOP_P", "0.9"))
CHAT_HISTORY_WINDOW = int(os.getenv("CHAT_HISTORY_WINDOW", "0"))  # 0 = full history
PROVIDER_TIMEOUT = float(os.getenv("PROVIDER_TIMEOUT", "60"))

# Storage + licenses
DATABASE_PATH = os.getenv("DATABASE_PATH", str(BASE_DIR / "soloman.db"))
LICENSE_FILE = os.getenv("LICENSE_FILE", str(BASE_DIR / "licenses.json"))
LICENSE_KEYS = [k.strip() for k in os.getenv("LICENSE_KEYS", "").split(",") if k.strip()]

# Persona override (markdown/plain text file)
PROMPT_PATH = os.getenv("PROMPT_PATH", "")

# Frontend build + CORS
DIST_DIR = Path(os.getenv("DIST_DIR", str(BASE_DIR / "dist")))
ALLOWED_ORIGINS = [
    o.strip() for o in os.getenv("ALLOWED_ORIGINS", "*").split(",")
]

# Per-client request budget on /api/*; empty disables
RATE_LIMIT = os.getenv("RATE_LIMIT", "100/15minutes")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


@dataclass(frozen=True)
class Settings:
    """Snapshot of the module constants; pass a custom one to create_app in tests."""

    openai_api_key: str = OPENAI_API_KEY
    chat_model: str = CHAT_MODEL
    image_model: str = IMAGE_MODEL
    image_size: str = IMAGE_SIZE
    chat_temperature: float = CHAT_TEMPERATURE
    chat_top_p: float = CHAT_TOP_P
    chat_history_window: int = CHAT_HISTORY_WINDOW
    provider_timeout: float = PROVIDER_TIMEOUT
    database_path: str = DATABASE_PATH
    license_file: str = LICENSE_FILE
    license_keys: FrozenSet[str] = frozenset(LICENSE_KEYS)
    prompt_path: Optional[str] = PROMPT_PATH or None
    dist_dir: Path = DIST_DIR
    allowed_origins: List[str] = field(default_factory=lambda: list(ALLOWED_ORIGINS))
    rate_limit: str = RATE_LIMIT

    @classmethod
    def from_env(cls) -> "Settings":
        return cls()
