"""
Transcript buffer - rolling window of final fragments plus the live interim.
"""

from __future__ import annotations

import time
from collections import deque
from dataclasses import dataclass, field


@dataclass(frozen=True)
class TranscriptFragment:
    """A piece of recognized speech.

    Interim fragments are revisable guesses; a final fragment is settled.
    """
    text: str
    is_final: bool = False
    timestamp: float = field(default_factory=time.monotonic)

    @property
    def is_empty(self) -> bool:
        return not self.text.strip()


class TranscriptBuffer:
    """
    Bounded buffer of finals and a single interim slot.

    Finals are appended (oldest evicted past ``capacity``) and clear the
    interim slot. Interims only replace the slot and are never stored.

    Example:
        buf = TranscriptBuffer(capacity=50)
        buf.add(TranscriptFragment("once upon", is_final=False))
        buf.add(TranscriptFragment("once upon a time", is_final=True))
        buf.context_text()   # "once upon a time"
    """

    def __init__(self, capacity: int = 50):
        self.capacity = capacity
        self._finals: deque[str] = deque(maxlen=capacity)
        self._interim = ""

    def add(self, fragment: TranscriptFragment) -> None:
        text = fragment.text.strip()
        if fragment.is_final:
            if text:
                self._finals.append(text)
            self._interim = ""
        else:
            self._interim = text

    @property
    def finals(self) -> list[str]:
        return list(self._finals)

    @property
    def interim(self) -> str:
        return self._interim

    def recent(self, count: int) -> list[str]:
        if count <= 0:
            return []
        return list(self._finals)[-count:]

    def context_text(self, finals: int = 10) -> str:
        """Last ``finals`` finals joined with the interim."""
        parts = [" ".join(self.recent(finals)), self._interim]
        return " ".join(p for p in parts if p).strip()

    def clear(self) -> None:
        self._finals.clear()
        self._interim = ""

    def __len__(self) -> int:
        return len(self._finals)
