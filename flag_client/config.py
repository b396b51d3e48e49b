"""
Client configuration and shared client instances.

Settings come from environment variables with the ``FLAGS_`` prefix or from
a ``.env`` file:

- ``FLAGS_PATH``: flag file to watch (optional)
- ``FLAGS_SCOPES``: comma separated scope chain, e.g. ``region/eu,cohort/beta``
- ``FLAGS_DEBOUNCE_SECONDS``: delay before re-reading a changed file
- ``FLAGS_LOG_LEVEL``: log level used by the CLI
"""

import logging
import threading
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .change_source import FileChangeSource
from .client import FlagClient


logger = logging.getLogger(__name__)


class ClientSettings(BaseSettings):
    """Flag client settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_prefix="FLAGS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    path: Optional[Path] = Field(None, description="Flag file to load and watch")
    scopes: str = Field("", description="Comma separated scope chain")
    debounce_seconds: float = Field(0.1, description="Delay before re-reading a changed flag file")
    log_level: str = Field("INFO", description="Log level for command line tools")

    @field_validator("debounce_seconds")
    @classmethod
    def validate_debounce(cls, v):
        """Validate debounce is not negative."""
        if v < 0:
            raise ValueError("Debounce must be zero or positive")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        level = v.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {v}")
        return level

    @property
    def scope_chain(self) -> List[str]:
        return split_scopes(self.scopes)


def split_scopes(value: str) -> List[str]:
    return [scope.strip() for scope in value.split(",") if scope.strip()]


@lru_cache(maxsize=1)
def get_settings() -> ClientSettings:
    return ClientSettings()


# Shared clients and sources, one per (path, scopes)
_clients: Dict[Tuple[str, Tuple[str, ...]], FlagClient] = {}
_sources: Dict[str, FileChangeSource] = {}
_clients_lock = threading.Lock()


def _get_source(path: Path, debounce_seconds: float) -> FileChangeSource:
    """Get or start the shared file source for a path (caller holds the lock)."""
    key = str(path.resolve())
    if key not in _sources:
        _sources[key] = FileChangeSource(path, debounce_seconds).start()
    return _sources[key]


def get_client(path: Optional[str] = None, scopes: Optional[Sequence[str]] = None,
               settings: Optional[ClientSettings] = None) -> FlagClient:
    """
    Get a shared client for a flag file and scope chain.

    Missing arguments fall back to the configured settings. Without any flag
    file the client serves the empty default snapshot.

    Args:
        path: Flag file to load and watch
        scopes: Scope chain for the client
        settings: Settings to use instead of the environment

    Returns:
        FlagClient instance, shared between callers with the same arguments
    """
    settings = settings or get_settings()
    flag_path = Path(path) if path else settings.path
    chain = tuple(scopes) if scopes is not None else tuple(settings.scope_chain)
    key = (str(flag_path.resolve()) if flag_path else "", chain)

    with _clients_lock:
        if key not in _clients:
            source = _get_source(flag_path, settings.debounce_seconds) if flag_path else None
            _clients[key] = FlagClient(chain, source=source)
            logger.debug(f"Created flag client for {flag_path or '<no file>'} with scopes {list(chain)}")
        return _clients[key]


def shutdown_clients() -> None:
    """Close all shared clients and stop their file watchers."""
    with _clients_lock:
        for client in _clients.values():
            client.close()
        _clients.clear()
        for source in _sources.values():
            source.stop()
        _sources.clear()
