import asyncio
from dataclasses import dataclass, field
from typing import Awaitable, Callable, FrozenSet, Tuple

from swingcoach.services.models import FileState

Sleep = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class PollPolicy:
    """
    Bounded polling for the Files API processing state.

    The worst-case wait is max_attempts * interval_seconds.
    """

    max_attempts: int = 10
    interval_seconds: float = 5.0
    terminal_states: FrozenSet[FileState] = field(
        default_factory=lambda: frozenset({FileState.ACTIVE, FileState.FAILED})
    )

    def is_terminal(self, state: FileState) -> bool:
        return state in self.terminal_states

    @property
    def ceiling_seconds(self) -> float:
        return self.max_attempts * self.interval_seconds


@dataclass(frozen=True)
class FallbackPolicy:
    """Ordered model tiers and the fixed wait between them."""

    models: Tuple[str, ...] = ("gemini-1.5-flash", "gemini-1.5-pro")
    backoff_seconds: float = 2.0


async def default_sleep(seconds: float) -> None:
    await asyncio.sleep(seconds)
