from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import TYPE_CHECKING, Optional

from dotenv import load_dotenv

if TYPE_CHECKING:
    from synorb_mcp.models import Credentials


DEFAULT_API_BASE_URL = "https://feeds.parsym.com/api/v1"
DEFAULT_PORT = 3000
SERVICE_NAME = "synorb-mcp-server"

_TRUTHY = {"1", "true", "yes", "on"}


def _find_repo_root(start: Path) -> Optional[Path]:
    """Walk upward until we find pyproject.toml or .git."""
    start = start.resolve()
    for p in (start, *start.parents):
        if (p / "pyproject.toml").exists() or (p / ".git").exists():
            return p
    return None


@lru_cache(maxsize=1)
def repo_root() -> Path:
    """Best-effort repository root discovery.

    Order of precedence:
      1) SYNORB_REPO_ROOT (explicit override)
      2) walk upward from current working directory
      3) walk upward from this module file's directory
    """
    explicit = os.getenv("SYNORB_REPO_ROOT")
    if explicit:
        p = Path(explicit).expanduser().resolve()
        if not p.is_dir():
            raise RuntimeError(f"SYNORB_REPO_ROOT does not exist or is not a directory: {p}")
        return p

    cwd = Path.cwd().resolve()
    root = _find_repo_root(cwd)
    if root:
        return root

    here_dir = Path(__file__).resolve().parent
    root = _find_repo_root(here_dir)
    if root:
        return root

    # typical layout: repo/src/synorb_config/settings.py
    if len(here_dir.parents) >= 2:
        return here_dir.parents[1]

    return cwd


@lru_cache(maxsize=1)
def load_env_once() -> Optional[Path]:
    """
    Load dotenv exactly once. Precedence:
      1) SYNORB_ENV_FILE (explicit path)
      2) repo-root/.env
      3) repo-root/config/.env
    """
    explicit = os.getenv("SYNORB_ENV_FILE")
    candidates = []

    if explicit:
        candidates.append(Path(explicit).expanduser())
    candidates.append(repo_root() / ".env")
    candidates.append(repo_root() / "config" / ".env")

    for p in candidates:
        p = p.resolve()
        if p.exists() and p.is_file():
            # Do NOT override already-set environment variables
            load_dotenv(dotenv_path=str(p), override=False)
            return p

    return None


def telemetry_dir() -> Path:
    """
    Default telemetry dir. Override with SYNORB_TELEMETRY_DIR.
    """
    p = os.getenv("SYNORB_TELEMETRY_DIR")
    if p:
        return Path(p).expanduser().resolve()
    return (repo_root() / "artifacts" / "telemetry").resolve()


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in _TRUTHY


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    api_key: str = ""
    api_secret: str = ""
    api_base_url: str = DEFAULT_API_BASE_URL
    http_mode: bool = False
    host: str = "0.0.0.0"
    port: int = DEFAULT_PORT
    connect_timeout: float = 3.05
    read_timeout: float = 30.0
    user_agent: str = "synorb-mcp/1.0"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            api_key=(os.getenv("SYNORB_API_KEY") or "").strip(),
            api_secret=(os.getenv("SYNORB_API_SECRET") or "").strip(),
            api_base_url=(os.getenv("SYNORB_API_BASE_URL") or DEFAULT_API_BASE_URL).rstrip("/"),
            http_mode=_env_flag("HTTP_MODE"),
            host=os.getenv("HOST", "0.0.0.0"),
            port=_env_int("PORT", DEFAULT_PORT),
            connect_timeout=_env_float("SYNORB_HTTP_CONNECT_TIMEOUT", 3.05),
            read_timeout=_env_float("SYNORB_HTTP_READ_TIMEOUT", 30.0),
            user_agent=os.getenv("SYNORB_HTTP_USER_AGENT", "synorb-mcp/1.0"),
        )

    @property
    def timeout(self) -> tuple[float, float]:
        return (self.connect_timeout, self.read_timeout)

    def default_credentials(self) -> "Credentials | None":
        """Process-wide credentials, or None when either half is missing."""
        from synorb_mcp.models import Credentials

        if not (self.api_key and self.api_secret):
            return None
        return Credentials(api_key=self.api_key, secret=self.api_secret)


def configure_logging() -> None:
    """
    Configure logging explicitly. No import-time side effects.
    Idempotent: if logging is already configured, do nothing.
    """
    root = logging.getLogger()
    if root.handlers:
        return

    level_name = os.getenv("SYNORB_LOG_LEVEL", "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)

    fmt = os.getenv(
        "SYNORB_LOG_FORMAT",
        "%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # basicConfig logs to stderr; stdout carries the MCP stdio stream.
    logging.basicConfig(level=level, format=fmt)


def init_runtime(*, configure_logs: bool = True, load_env: bool = True) -> None:
    """
    Call this from entrypoints only (servers, scripts).
    """
    if load_env:
        load_env_once()
    if configure_logs:
        configure_logging()
