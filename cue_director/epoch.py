"""
Epochs - Monotonic generation tokens for cancelling asynchronous work.

Every suspendable call (asset resolution, decode, remote analysis) captures
the epoch that was live when it was submitted. After each await it compares
that token against the counter; a mismatch means the mode changed or the
narrative closed while it was suspended, and the continuation becomes a
no-op for everything except the read-only asset cache.

Example:
    epochs = EpochCounter()
    token = epochs.current

    url = await provider.search("dog bark", "sfx")
    if not epochs.is_current(token):
        return None          # superseded, drop silently

    epochs.bump()            # mode change: all in-flight tokens go stale
"""

from __future__ import annotations

from dataclasses import dataclass

from cue_director.errors import StaleEpochError


@dataclass(frozen=True, order=True)
class Epoch:
    """An immutable generation token."""
    value: int = 0

    def next(self) -> Epoch:
        return Epoch(self.value + 1)

    def __int__(self) -> int:
        return self.value


class EpochCounter:
    """Owner of the live epoch. Only moves forward."""

    def __init__(self, start: int = 0):
        self._current = Epoch(start)

    @property
    def current(self) -> Epoch:
        return self._current

    def bump(self) -> Epoch:
        """Invalidate every outstanding token and return the new one."""
        self._current = self._current.next()
        return self._current

    def is_current(self, epoch: Epoch | None) -> bool:
        """True if ``epoch`` is still live. ``None`` means "not epoch-bound"."""
        return epoch is None or epoch == self._current

    def check(self, epoch: Epoch | None) -> None:
        """Raise StaleEpochError if ``epoch`` has been superseded."""
        if not self.is_current(epoch):
            raise StaleEpochError(int(epoch), int(self._current))
