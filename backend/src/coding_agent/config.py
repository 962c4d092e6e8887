"""Coding agent configuration: paths, defaults, provider settings and logging."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from main_config import (
    AGENT_DB_PATH as _AGENT_DB_PATH,
    DB_DIR as _DB_DIR,
    DEFAULT_SYSTEM_PROMPT_PATH as _DEFAULT_SYSTEM_PROMPT_PATH,
    LOG_DIR as _LOG_DIR,
)

# Path objects for use in this package (main_config uses os.path strings)
DB_DIR = Path(_DB_DIR)
AGENT_DB_PATH = Path(_AGENT_DB_PATH)
LOG_DIR = Path(_LOG_DIR)
DEFAULT_SYSTEM_PROMPT_PATH = Path(_DEFAULT_SYSTEM_PROMPT_PATH)

DEFAULT_MAX_ITERATIONS = 50
DEFAULT_MAX_TOKENS = 4096
DEFAULT_TEMPERATURE = 0.7

DEFAULT_COMMAND_TIMEOUT_MS = 30_000
INSTALL_TIMEOUT_MS = 120_000
GIT_STATUS_TIMEOUT_MS = 10_000
GIT_TIMEOUT_MS = 30_000
SEARCH_TIMEOUT_MS = 30_000
MAX_OUTPUT_BYTES = 10 * 1024 * 1024

MAX_SEARCH_RESULTS = 100
MAX_COMMIT_MESSAGE_LENGTH = 500
EDIT_PREVIEW_CHARS = 200

# Skipped by list_files / get_file_structure (dot entries are always skipped)
LISTING_IGNORED_DIRS = frozenset({"node_modules", "__pycache__", "venv"})
# Passed to grep as --exclude-dir
SEARCH_EXCLUDED_DIRS = ("node_modules", ".git", "dist", "build", "__pycache__", ".venv", "venv")

MEGALLM_BASE_URL = "https://ai.megallm.io/v1"

DEFAULT_ANTHROPIC_MODEL = "claude-sonnet-4-5"
DEFAULT_OPENAI_MODEL = "gpt-4o-mini"
DEFAULT_GEMINI_MODEL = "gemini-2.5-flash"

_TRUTHY = {"1", "true", "yes", "on"}


def ensure_dirs() -> None:
    """Create the db directory if it does not exist."""
    DB_DIR.mkdir(parents=True, exist_ok=True)


def get_project_root() -> Path:
    """Root directory every file, search and shell tool is confined to."""
    raw = os.getenv("AGENT_PROJECT_ROOT")
    root = Path(raw) if raw else Path.cwd()
    return root.resolve()


def git_tools_enabled() -> bool:
    return os.getenv("AGENT_ENABLE_GIT_TOOLS", "").strip().lower() in _TRUTHY


def default_model_provider() -> str:
    return os.getenv("AGENT_MODEL_PROVIDER", "anthropic").strip().lower() or "anthropic"


# ---------------------------------------------------------------------------
# Provider settings
# ---------------------------------------------------------------------------


class BackendSettings(BaseModel):
    """Connection and generation settings for one LLM backend."""

    api_key: str = Field(default="", description="API key sent to the backend.")
    base_url: str | None = Field(default=None, description="Alternate API base URL.")
    model: str = Field(..., description="Model used when the caller does not pick one.")
    max_tokens: int = DEFAULT_MAX_TOKENS
    temperature: float | None = DEFAULT_TEMPERATURE


class ProviderSettings(BaseModel):
    """Settings for every supported backend, usually built from the environment."""

    anthropic: BackendSettings = Field(
        default_factory=lambda: BackendSettings(model=DEFAULT_ANTHROPIC_MODEL)
    )
    openai: BackendSettings = Field(
        default_factory=lambda: BackendSettings(model=DEFAULT_OPENAI_MODEL)
    )
    gemini: BackendSettings = Field(
        default_factory=lambda: BackendSettings(model=DEFAULT_GEMINI_MODEL)
    )

    @classmethod
    def from_env(cls) -> ProviderSettings:
        """Read keys, base URLs and default models from the environment (and .env)."""
        load_dotenv()
        gateway_key = os.getenv("MEGALLM_API_KEY") or ""
        gateway_url = MEGALLM_BASE_URL if gateway_key else None

        anthropic = BackendSettings(
            api_key=gateway_key or os.getenv("ANTHROPIC_API_KEY", ""),
            base_url=os.getenv("ANTHROPIC_BASE_URL") or gateway_url,
            model=os.getenv("ANTHROPIC_MODEL") or DEFAULT_ANTHROPIC_MODEL,
        )
        openai = BackendSettings(
            api_key=gateway_key or os.getenv("OPENAI_API_KEY", ""),
            base_url=os.getenv("OPENAI_BASE_URL") or gateway_url,
            model=os.getenv("OPENAI_MODEL") or DEFAULT_OPENAI_MODEL,
        )
        gemini = BackendSettings(
            api_key=(
                os.getenv("GEMINI_API_KEY")
                or os.getenv("GOOGLE_API_KEY")
                or gateway_key
            ),
            model=os.getenv("GEMINI_MODEL") or DEFAULT_GEMINI_MODEL,
        )
        return cls(anthropic=anthropic, openai=openai, gemini=gemini)

    def for_provider(self, provider: str) -> BackendSettings:
        return getattr(self, provider)


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

_NOISY_LOGGERS = ("httpx", "httpcore", "anthropic", "openai", "google_genai", "uvicorn.access")


def setup_logging(level: str | int | None = None, log_file: Path | None = None) -> None:
    """Configure root logging for the backend process."""
    if level is None:
        level = os.getenv("LOG_LEVEL", "INFO").upper()

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, mode="a", encoding="utf-8"))

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=handlers,
        force=True,
    )
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
