"""Configuration management for API keys and settings."""

import json
import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional
from pathlib import Path

from dotenv import load_dotenv

# config.py is in career_roadmap/, .env is in project root
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(env_path, override=False)

logger = logging.getLogger(__name__)


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


class Config:
    """Application configuration from environment variables."""

    # Gemini settings
    GEMINI_API_KEY: Optional[str] = os.getenv("GEMINI_API_KEY")
    GEMINI_MODEL: str = os.getenv("GEMINI_MODEL", "gemini-2.5-flash-preview-09-2025")
    GEMINI_BASE_URL: str = os.getenv("GEMINI_BASE_URL", "https://generativelanguage.googleapis.com")
    GEMINI_TIMEOUT_SECONDS: float = float(os.getenv("GEMINI_TIMEOUT_SECONDS", "90"))

    # Retry budget: attempts include the first one; delay before attempt n is base * 2^(n-1)
    GEMINI_MAX_ATTEMPTS: int = int(os.getenv("GEMINI_MAX_ATTEMPTS", "5"))
    GEMINI_BACKOFF_BASE_SECONDS: float = float(os.getenv("GEMINI_BACKOFF_BASE_SECONDS", "1.0"))

    # Document store settings
    APP_ID: str = os.getenv("APP_ID", "career-roadmap-pro")
    STORE_BACKEND: str = os.getenv("STORE_BACKEND", "firestore")  # "firestore" or "memory"

    # Identity
    # INITIAL_AUTH_TOKEN must be a Firebase ID token; custom tokens fail verification
    REQUIRE_AUTH: bool = _env_bool("REQUIRE_AUTH")
    ANONYMOUS_ID: Optional[str] = (os.getenv("ANONYMOUS_ID") or "").strip() or None
    ANONYMOUS_ID_FILE: Path = Path(os.getenv("ANONYMOUS_ID_FILE", str(Path(__file__).parent.parent / ".anonymous_id")))

    # Server
    HOST: str = os.getenv("HOST", "127.0.0.1")
    PORT: int = int(os.getenv("PORT", "8010"))
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

    @classmethod
    def validate(cls) -> list[str]:
        """Validate configuration and return list of missing required settings."""
        missing = []

        if not cls.GEMINI_API_KEY:
            missing.append("GEMINI_API_KEY (required for plan generation and chat)")

        if cls.STORE_BACKEND not in ("firestore", "memory"):
            missing.append(f"STORE_BACKEND must be 'firestore' or 'memory', got '{cls.STORE_BACKEND}'")

        if cls.GEMINI_MAX_ATTEMPTS < 1:
            missing.append("GEMINI_MAX_ATTEMPTS must be at least 1")

        return missing


# Used when the hosting environment provides no store configuration
DEFAULT_STORE_CONFIG: Dict[str, Any] = {
    "apiKey": "demo",
    "authDomain": "demo.firebaseapp.com",
    "projectId": "demo",
    "appId": "demo",
}


@dataclass(frozen=True)
class BootstrapConfig:
    """Values handed over by the hosting environment at startup.

    Resolved once before the core is constructed; never consulted again.
    """
    identity_token: Optional[str] = None
    store_config: Optional[Dict[str, Any]] = None

    @classmethod
    def from_env(cls) -> "BootstrapConfig":
        token = (os.getenv("INITIAL_AUTH_TOKEN") or "").strip() or None

        store_config = None
        raw = (os.getenv("FIREBASE_CONFIG") or "").strip()
        if raw:
            try:
                store_config = json.loads(raw)
            except json.JSONDecodeError:
                logger.warning("FIREBASE_CONFIG is not valid JSON, using default store configuration")
            else:
                if not isinstance(store_config, dict):
                    logger.warning("FIREBASE_CONFIG must be a JSON object, using default store configuration")
                    store_config = None

        return cls(identity_token=token, store_config=store_config)

    def effective_store_config(self) -> Dict[str, Any]:
        return dict(self.store_config) if self.store_config else dict(DEFAULT_STORE_CONFIG)
