"""
In-memory workflow sessions, one store and sequencer per session id
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional

from ..config import WORKFLOW_SESSION_TTL
from ..exceptions import UnknownSessionError
from .sequencer import WorkflowSequencer
from .store import WorkflowStore

logger = logging.getLogger(__name__)


@dataclass
class WorkflowSession:
    session_id: str
    store: WorkflowStore
    sequencer: WorkflowSequencer
    last_access: float = field(default_factory=time.monotonic)

    def touch(self, now: float):
        self.last_access = now

    def describe(self):
        """State plus the derived navigation data"""
        next_step = self.sequencer.get_next_step()
        return {
            "sessionId": self.session_id,
            "state": self.store.snapshot(),
            "progress": self.sequencer.get_step_progress(),
            "nextStep": next_step.value if next_step else None,
            "reachable": self.sequencer.reachability(),
        }


class WorkflowSessionManager:
    """Sessions live for the process lifetime and expire after a period of inactivity"""

    def __init__(self, ttl: float = WORKFLOW_SESSION_TTL, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self.clock = clock
        self._sessions: Dict[str, WorkflowSession] = {}

    def __len__(self):
        return len(self._sessions)

    def purge_expired(self) -> int:
        now = self.clock()
        expired = [
            session_id
            for session_id, session in self._sessions.items()
            if now - session.last_access > self.ttl
        ]
        for session_id in expired:
            self._drop(session_id)
        if expired:
            logger.info(f"Expired {len(expired)} idle workflow sessions")
        return len(expired)

    def get(self, session_id: str) -> WorkflowSession:
        self.purge_expired()
        session = self._sessions.get(session_id)
        if session is None:
            raise UnknownSessionError(session_id)
        session.touch(self.clock())
        return session

    def get_or_create(self, session_id: str) -> WorkflowSession:
        self.purge_expired()
        session = self._sessions.get(session_id)
        if session is None:
            store = WorkflowStore()
            sequencer = WorkflowSequencer(store)
            sequencer.attach()
            session = WorkflowSession(session_id, store, sequencer, self.clock())
            self._sessions[session_id] = session
            logger.info(f"Created workflow session {session_id}")
        session.touch(self.clock())
        return session

    def delete(self, session_id: str):
        if session_id not in self._sessions:
            raise UnknownSessionError(session_id)
        self._drop(session_id)

    def _drop(self, session_id: str) -> Optional[WorkflowSession]:
        session = self._sessions.pop(session_id, None)
        if session:
            session.sequencer.detach()
        return session
