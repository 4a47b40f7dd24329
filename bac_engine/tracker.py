"""Owns the session lifecycle around a store: start, resume, save, end.

The tracker keeps no session in memory. Callers hold the Session returned
to them and hand it back for saving; the store is durability only.
"""

import logging
import threading
from datetime import datetime
from typing import Callable, Dict, List, Optional

from bac_engine.config import DEFAULT_CONFIG, EngineConfig
from bac_engine.errors import NotFound, PersistenceError
from bac_engine.events import as_utc, utcnow
from bac_engine.profile import Profile, validate_profile
from bac_engine.session import Session

logger = logging.getLogger(__name__)

_locks: Dict[str, threading.Lock] = {}
_locks_guard = threading.Lock()


def profile_lock(profile_id: str) -> threading.Lock:
    """Process-wide lock serializing load, change and save for one profile."""
    with _locks_guard:
        return _locks.setdefault(profile_id, threading.Lock())


class SessionTracker:
    def __init__(self, store, config: EngineConfig = DEFAULT_CONFIG, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.config = config
        self.clock = clock

    def _now(self, now: Optional[datetime]) -> datetime:
        return as_utc(now) if now is not None else self.clock()

    def resume(self, profile_id: str, now: Optional[datetime] = None) -> Optional[Session]:
        """Load the active session and bring it up to date with the clock."""
        session = self.store.load_active_session(profile_id)
        if session is None:
            return None
        session.tick(self._now(now))
        logger.debug("resumed session %s for profile %s", session.id, profile_id)
        return session

    def current(self, provider, now: Optional[datetime] = None) -> Optional[Session]:
        return self.resume(provider.get_active_profile().id, now)

    def start(self, profile: Profile, now: Optional[datetime] = None) -> Session:
        """Return the profile's active session, creating one if there is none."""
        validate_profile(profile)
        with profile_lock(profile.id):
            existing = self.resume(profile.id, now)
            if existing is not None:
                return existing
            session = Session(profile=profile, start_time=self._now(now), config=self.config)
            logger.info("started session %s for profile %s", session.id, profile.id)
            self.save(session)
            return session

    def transition(self, profile_id: str, change: Callable[[Session], object], now: Optional[datetime] = None) -> Session:
        """Apply `change` to the active session and persist the result.

        Load, change and save run under the profile lock, so concurrent
        callers never overwrite each other. A change that ends the session
        moves it into history.
        """
        with profile_lock(profile_id):
            session = self.resume(profile_id, now)
            if session is None:
                raise NotFound("No active session; start one first")
            change(session)
            if session.is_active:
                self.save(session)
            else:
                self._archive_or_warn(session)
            return session

    def save(self, session: Session) -> None:
        """Persist an active session. Raises PersistenceError; the session is untouched."""
        try:
            self.store.save_session(session)
        except PersistenceError:
            logger.warning("could not save session %s; in-memory state kept", session.id)
            raise

    def end(self, session: Session, now: Optional[datetime] = None) -> Session:
        session.end(self._now(now))
        self._archive_or_warn(session)
        return session

    def _archive_or_warn(self, session: Session) -> None:
        try:
            self.store.append_to_history(session)
        except PersistenceError:
            logger.warning("could not archive session %s; retry with archive()", session.id)
            raise

    def archive(self, session: Session) -> None:
        """Retry moving an already ended session into history."""
        self.store.append_to_history(session)

    def history(self, profile_id: str, limit: int = 50) -> List[Session]:
        return self.store.list_history(profile_id, limit=limit)

    def delete(self, profile_id: str, session_id: str) -> bool:
        return self.store.delete_session(profile_id, session_id)
