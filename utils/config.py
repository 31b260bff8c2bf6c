"""Environment-driven settings for the agent service.

Values are read with `os.getenv` after `load_dotenv()` has run in
`main.py`, so a local `.env` file can provide any of them.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Tuple, TypeVar

T = TypeVar("T")

DEFAULT_WINDOW_TITLES = ("iPhone Mirroring", "MirrorDisplay")


def _env(name: str, default: T, cast: Callable[[str], T]) -> T:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return cast(raw.strip())
    except ValueError as exc:
        raise RuntimeError(f"Invalid value for {name}: {raw!r}") from exc


def _titles(raw: str) -> Tuple[str, ...]:
    titles = tuple(part.strip() for part in raw.split(",") if part.strip())
    if not titles:
        raise ValueError("no window titles")
    return titles


@dataclass(frozen=True)
class AgentSettings:
    """Tunables for the model gateway, the task loop and the image pipeline."""

    model: str = "claude-sonnet-4-20250514"
    max_tokens: int = 1024
    temperature: float = 0.0
    max_conversation_messages: int = 60
    step_delay_seconds: float = 1.0
    settle_delay_seconds: float = 3.0
    pause_poll_seconds: float = 0.25
    overload_max_retries: int = 3
    overload_base_delay_seconds: float = 1.0
    image_byte_ceiling: int = 1_000_000
    image_start_quality: int = 90
    window_titles: Tuple[str, ...] = field(default=DEFAULT_WINDOW_TITLES)
    database_dir: Path = field(default_factory=lambda: Path("database"))
    credentials_file: Path = field(default_factory=lambda: Path(".env"))

    @classmethod
    def from_env(cls) -> "AgentSettings":
        """Build settings from environment variables, falling back to defaults."""
        defaults = cls()
        return cls(
            model=_env("ANTHROPIC_MODEL", defaults.model, str),
            max_tokens=_env("ANTHROPIC_MAX_TOKENS", defaults.max_tokens, int),
            temperature=_env("ANTHROPIC_TEMPERATURE", defaults.temperature, float),
            max_conversation_messages=_env(
                "MAX_CONVERSATION_MESSAGES", defaults.max_conversation_messages, int
            ),
            step_delay_seconds=_env("STEP_DELAY_SECONDS", defaults.step_delay_seconds, float),
            settle_delay_seconds=_env("SETTLE_DELAY_SECONDS", defaults.settle_delay_seconds, float),
            pause_poll_seconds=_env("PAUSE_POLL_SECONDS", defaults.pause_poll_seconds, float),
            overload_max_retries=_env("OVERLOAD_MAX_RETRIES", defaults.overload_max_retries, int),
            overload_base_delay_seconds=_env(
                "OVERLOAD_BASE_DELAY_SECONDS", defaults.overload_base_delay_seconds, float
            ),
            image_byte_ceiling=_env("IMAGE_BYTE_CEILING", defaults.image_byte_ceiling, int),
            image_start_quality=_env("IMAGE_START_QUALITY", defaults.image_start_quality, int),
            window_titles=_env("MIRROR_WINDOW_TITLES", defaults.window_titles, _titles),
            database_dir=_env("DATABASE_DIR", defaults.database_dir, lambda raw: Path(raw).expanduser()),
            credentials_file=_env(
                "CREDENTIALS_FILE", defaults.credentials_file, lambda raw: Path(raw).expanduser()
            ),
        )
