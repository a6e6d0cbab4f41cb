# a11y_query/utils/config.py
from __future__ import annotations

import copy
import functools
from contextlib import contextmanager
from dataclasses import dataclass, fields
from enum import Enum
from pathlib import Path
from typing import Any, Iterator, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# ---------- Enums ----------

class LogLevel(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


# ---------- Settings ----------

class Settings(BaseSettings):
    """
    Static configuration for a11y-query.

    Values load in this order of precedence:
      1) Environment variables (prefixed with A11Y_QUERY_)
      2) .env file in the working directory
      3) Defaults below

    These only seed the runtime `Configuration`; per-call options and
    `configure()` take precedence over them.
    """

    # ---- Query defaults ----
    TIMEOUT_MS: int = Field(default=3000, ge=0, description="Default find/wait timeout (ms)")
    POLL_INTERVAL_MS: int = Field(default=50, ge=1, le=1000, description="Delay between polls (ms)")
    VISIBLE_ONLY: bool = Field(default=True, description="Only match visible nodes by default")

    # ---- Browser (CLI only) ----
    HEADLESS: bool = Field(default=True, description="Run the browser headless")
    BROWSER_CHANNEL: Optional[str] = Field(default=None, description="Chromium channel, e.g. 'chrome'")
    LAUNCH_ARGS: list[str] = Field(default_factory=list, description="Extra Chromium arguments")
    PAGE_LOAD_TIMEOUT: int = Field(default=30000, ge=1000)

    # ---- Error reporting ----
    INTERNAL_STACK_MARKERS: list[str] = Field(
        default_factory=list,
        description="Extra path fragments treated as internal when attributing error stacks",
    )

    # ---- Logging ----
    LOG_LEVEL: LogLevel = Field(default=LogLevel.WARNING)
    LOG_TO_FILE: bool = Field(default=False)
    LOG_FILE: Path = Field(default=Path("./a11y-query.log"))
    COLORIZED_OUTPUT: bool = Field(default=True)

    model_config = SettingsConfigDict(
        env_prefix="A11Y_QUERY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("LOG_FILE", mode="after")
    @classmethod
    def _absolutize_log_file(cls, v: Path):
        return v if v.is_absolute() else Path.cwd() / v


# --------- Public accessor (memoized) ---------

@functools.lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Load and cache settings once per process.
    Call `get_settings.cache_clear()` if you need to reload after changing env.
    """
    return Settings()


# --------- Runtime configuration ---------

@dataclass
class Configuration:
    """
    Mutable defaults read by find/find_all/wait_for at call time.

    `document` is the DocumentContext queries run against when no explicit
    one is passed. Writes are last-write-wins; nothing here is locked, so
    callers are expected to configure once per test and restore afterwards.
    """

    timeout: int = 3000
    interval: int = 50
    visible: bool = True
    document: Any = None

    @classmethod
    def from_settings(cls, s: Optional[Settings] = None) -> "Configuration":
        s = s or get_settings()
        return cls(timeout=s.TIMEOUT_MS, interval=s.POLL_INTERVAL_MS, visible=s.VISIBLE_ONLY)

    def snapshot(self) -> "Configuration":
        # shallow on purpose: the document context is shared, not cloned
        return copy.copy(self)

    def restore(self, snapshot: "Configuration") -> None:
        for f in fields(self):
            setattr(self, f.name, getattr(snapshot, f.name))

    def configure(self, **changes: Any) -> "Configuration":
        """Apply changes and return the previous state for `restore()`."""
        known = {f.name for f in fields(self)}
        unknown = set(changes) - known
        if unknown:
            raise TypeError(f"Unknown configuration option(s): {', '.join(sorted(unknown))}")
        previous = self.snapshot()
        for key, value in changes.items():
            setattr(self, key, value)
        return previous


_config: Optional[Configuration] = None


def get_config() -> Configuration:
    """Process-wide configuration, built from settings on first use."""
    global _config
    if _config is None:
        _config = Configuration.from_settings()
    return _config


def reset_config() -> Configuration:
    """Drop runtime changes and rebuild from (re-read) settings."""
    global _config
    get_settings.cache_clear()
    _config = Configuration.from_settings()
    return _config


def configure(**changes: Any) -> Configuration:
    """
    Update the process-wide configuration.

    Returns the previous state so tests can put it back:
        previous = configure(timeout=500, document=doc)
        ...
        get_config().restore(previous)
    """
    return get_config().configure(**changes)


@contextmanager
def configured(**changes: Any) -> Iterator[Configuration]:
    """Temporarily apply configuration changes for the enclosed block."""
    cfg = get_config()
    previous = cfg.configure(**changes)
    try:
        yield cfg
    finally:
        cfg.restore(previous)
