"""
Runtime configuration.

Values come from the process environment after the `.env` file next to this
module has been merged into it. Settings are read once at startup.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent
ENV_PATH = BASE_DIR / ".env"

DEFAULT_PORT = 3000
DEFAULT_HOST = "0.0.0.0"
DEFAULT_STATIC_ROOT = BASE_DIR / "static"


@dataclass(frozen=True)
class Settings:
    groq_api_key: str = ""
    port: int = DEFAULT_PORT
    host: str = DEFAULT_HOST
    static_root: Path = DEFAULT_STATIC_ROOT
    serverless: bool = False
    environment: str = "development"
    log_level: str = "INFO"
    debug: bool = False

    @property
    def api_key_status(self) -> str:
        return "set" if self.groq_api_key else "MISSING"


def load_env_file(path: Optional[Path] = None) -> bool:
    """
    Merge a KEY=VALUE file into os.environ. Entries in the file win over
    variables that are already set. Returns False when the file is absent.
    """
    path = Path(path) if path is not None else ENV_PATH
    if not path.is_file():
        return False
    return load_dotenv(dotenv_path=path, override=True)


def _parse_port(raw: Optional[str]) -> int:
    try:
        return int((raw or "").strip() or DEFAULT_PORT)
    except ValueError:
        return DEFAULT_PORT


def load_settings(env_path: Optional[Path] = None) -> Settings:
    """Load `.env` (if present) and build the immutable settings."""
    load_env_file(env_path)

    static_root = os.getenv("STATIC_ROOT", "").strip()

    return Settings(
        groq_api_key=os.getenv("GROQ_API_KEY", "").strip(),
        port=_parse_port(os.getenv("PORT")),
        host=os.getenv("HOST", DEFAULT_HOST).strip() or DEFAULT_HOST,
        static_root=Path(static_root) if static_root else DEFAULT_STATIC_ROOT,
        serverless=bool(os.getenv("VERCEL", "").strip()),
        environment=os.getenv("ENVIRONMENT", "development"),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        debug=os.getenv("DEBUG", "false").lower() == "true",
    )


def mask_secret(key: Optional[str]) -> str:
    """Safely mask API keys for logging."""
    if not key:
        return "None"
    if len(key) <= 8:
        return key[0] + "***" + key[-1]
    return key[:4] + "..." + key[-4:]
