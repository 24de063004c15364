from __future__ import annotations

import threading
from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import ContextManager, Iterator, Literal, Optional, Protocol

from .flow_graph import OfferTier


TranscriptRole = Literal["caller", "agent"]


@dataclass(frozen=True, slots=True)
class TranscriptEntry:
    role: TranscriptRole
    text: str
    t_ms: int


@dataclass(slots=True)
class ValueWindow:
    started_at_ms: int
    completed_at_ms: Optional[int] = None

    def elapsed_ms(self, now_ms: int) -> int:
        end = self.completed_at_ms if self.completed_at_ms is not None else now_ms
        return max(0, int(end) - int(self.started_at_ms))


@dataclass(slots=True)
class CallSession:
    session_id: str
    current_node_id: str
    value_window: ValueWindow
    slots: dict[str, str] = field(default_factory=dict)
    offer_tier: OfferTier = "none"
    # Lowest tier the caller has turned down; offers may only go below it.
    declined_tier: OfferTier = "none"
    objection_count: int = 0
    is_senior: bool = False
    is_veteran: bool = False
    visit_seq: int = 0
    objection_visit: int = -1
    reprompts: int = 0
    payment_accepted: bool = False
    closed: bool = False
    transcript: deque[TranscriptEntry] = field(default_factory=lambda: deque(maxlen=200))

    def record(self, role: TranscriptRole, text: str, t_ms: int) -> None:
        self.transcript.append(TranscriptEntry(role=role, text=text, t_ms=int(t_ms)))

    def land(self, node_id: str) -> None:
        self.current_node_id = node_id
        self.visit_seq += 1
        self.reprompts = 0


class SessionStore(Protocol):
    def get(self, session_id: str) -> Optional[CallSession]: ...

    def put(self, session: CallSession) -> None: ...

    def delete(self, session_id: str) -> bool: ...

    def with_lock(self, session_id: str) -> ContextManager[None]: ...

    def __len__(self) -> int: ...


@dataclass(slots=True)
class _LockEntry:
    lock: threading.Lock = field(default_factory=threading.Lock)
    holders: int = 0


class InMemorySessionStore(SessionStore):
    """
    Process-local session map.

    - with_lock(session_id) serializes work on one session; different sessions
      never contend beyond the short map guard.
    - A session's lock entry lives only while someone holds or waits on it.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, CallSession] = {}
        self._locks: dict[str, _LockEntry] = {}
        self._guard = threading.Lock()

    def get(self, session_id: str) -> Optional[CallSession]:
        with self._guard:
            return self._sessions.get(session_id)

    def put(self, session: CallSession) -> None:
        with self._guard:
            self._sessions[session.session_id] = session

    def delete(self, session_id: str) -> bool:
        with self._guard:
            return self._sessions.pop(session_id, None) is not None

    def __len__(self) -> int:
        with self._guard:
            return len(self._sessions)

    def _checkout(self, session_id: str) -> _LockEntry:
        with self._guard:
            entry = self._locks.get(session_id)
            if entry is None:
                entry = _LockEntry()
                self._locks[session_id] = entry
            entry.holders += 1
            return entry

    def _checkin(self, session_id: str, entry: _LockEntry) -> None:
        with self._guard:
            entry.holders -= 1
            if entry.holders == 0:
                self._locks.pop(session_id, None)

    @contextmanager
    def with_lock(self, session_id: str) -> Iterator[None]:
        entry = self._checkout(session_id)
        try:
            with entry.lock:
                yield
        finally:
            self._checkin(session_id, entry)
