"""
FundWars — IC Countdown Timer

Cooperative single-threaded countdown driven by the host, one tick per
second. Immutable like the session that holds it: every call returns a
new timer. The response clock is started only after narration returns,
so time spent waiting on an AI provider is never charged to the player.
"""

from dataclasses import dataclass, replace

OPENING_PITCH_SECONDS = 180
RESPONSE_SECONDS = 90
DELIBERATION_SECONDS = 3


@dataclass(frozen=True)
class CountdownTimer:
    duration: int = 0
    remaining: int = 0
    running: bool = False
    paused: bool = False

    @classmethod
    def started(cls, seconds: int) -> "CountdownTimer":
        return cls(duration=seconds, remaining=seconds, running=True)

    @property
    def expired(self) -> bool:
        return self.duration > 0 and self.remaining <= 0

    def tick(self, seconds: int = 1) -> "CountdownTimer":
        """Consume up to `seconds`; idle, paused or expired timers do not move."""
        if not self.running or self.paused or seconds <= 0:
            return self
        remaining = max(0, self.remaining - seconds)
        return replace(self, remaining=remaining, running=remaining > 0)

    def pause(self) -> "CountdownTimer":
        return replace(self, paused=True) if self.running else self

    def resume(self) -> "CountdownTimer":
        return replace(self, paused=False)

    def stop(self) -> "CountdownTimer":
        return replace(self, running=False, paused=False)
