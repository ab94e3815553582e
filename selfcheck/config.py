"""
Configuration and paths for the self-check.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load environment variables (try .env.local first, then .env)
load_dotenv('.env.local')
load_dotenv('.env')

PROJECT_ROOT = Path(__file__).parent.parent
DEFAULT_HISTORY_DIR = Path.home() / ".selfcheck"

PATHS = {
    "project_root": PROJECT_ROOT,
    "history_dir": DEFAULT_HISTORY_DIR,
}

DEFAULT_MODELS = {
    "gemini": "gemini-3-flash-preview",
    "openrouter": "google/gemini-2.5-flash",
    "mock": "mock",
}

PROVIDERS = tuple(DEFAULT_MODELS)


@dataclass(frozen=True)
class Settings:
    provider: str = "gemini"
    model: str = DEFAULT_MODELS["gemini"]
    api_key: Optional[str] = None
    timeout: float = 30.0
    temperature: float = 0.2
    history_dir: Path = DEFAULT_HISTORY_DIR


def _api_key_for(provider: str) -> Optional[str]:
    # Support both the provider-specific names and the generic API_KEY
    if provider == "gemini":
        return os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY")
    if provider == "openrouter":
        return os.getenv("OPENROUTER_API_KEY") or os.getenv("OPENROUTER_KEY")
    return None


def load_settings() -> Settings:
    provider = os.getenv("SELFCHECK_PROVIDER", "gemini").strip().lower()
    if provider not in PROVIDERS:
        raise ValueError(f"Unknown SELFCHECK_PROVIDER '{provider}', expected one of {', '.join(PROVIDERS)}")

    history_dir = os.getenv("SELFCHECK_HISTORY_DIR")

    return Settings(
        provider=provider,
        model=os.getenv("SELFCHECK_MODEL") or DEFAULT_MODELS[provider],
        api_key=_api_key_for(provider),
        timeout=float(os.getenv("SELFCHECK_TIMEOUT", "30")),
        temperature=float(os.getenv("SELFCHECK_TEMPERATURE", "0.2")),
        history_dir=Path(history_dir).expanduser() if history_dir else PATHS["history_dir"],
    )
