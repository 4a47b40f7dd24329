"""Drinking session: profile snapshot, event log, and derived BAC state.

Every transition validates first, then recomputes all derived fields from the
event log and only then assigns them, so a rejected call leaves the session
exactly as it was.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

from bac_engine.calculations import BacStatus, bac_status, compute_bac, hours_until
from bac_engine.config import DEFAULT_CONFIG, EngineConfig
from bac_engine.curve import Sample, generate_series
from bac_engine.errors import InvalidEvent, NotFound, SessionClosed
from bac_engine.events import (
    DrinkEvent,
    FoodEvent,
    as_utc,
    parse_drink,
    parse_food,
    parse_timestamp,
    utcnow,
)
from bac_engine.profile import Profile, profile_from_dict, validate_profile

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    ACTIVE = "active"
    CLOSED = "closed"


@dataclass
class Session:
    profile: Profile
    start_time: datetime
    config: EngineConfig = field(default=DEFAULT_CONFIG, repr=False, compare=False)
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    drinks: Tuple[DrinkEvent, ...] = ()
    foods: Tuple[FoodEvent, ...] = ()
    end_time: Optional[datetime] = None
    state: SessionState = SessionState.ACTIVE

    evaluated_at: datetime = field(init=False)
    current_bac: float = field(init=False, default=0.0)
    peak_bac: float = field(init=False, default=0.0)
    status: BacStatus = field(init=False, default=BacStatus.SAFE)
    sober_time: timedelta = field(init=False, default=timedelta(0))
    legal_time: timedelta = field(init=False, default=timedelta(0))
    bac_series: List[Sample] = field(init=False, default_factory=list)

    def __post_init__(self):
        validate_profile(self.profile)
        self.start_time = as_utc(self.start_time)
        if self.state is SessionState.CLOSED and self.end_time is None:
            raise InvalidEvent("closed session without end_time")
        if self.end_time is not None:
            self.end_time = as_utc(self.end_time)
        self.drinks = tuple(sorted(self.drinks, key=lambda d: d.timestamp))
        self.foods = tuple(sorted(self.foods, key=lambda f: f.timestamp))
        ids = [e.id for e in self.drinks + self.foods]
        if len(ids) != len(set(ids)):
            raise InvalidEvent("event ids must be unique within a session")
        for event in self.drinks + self.foods:
            if event.timestamp < self.start_time:
                raise InvalidEvent(f"event {event.id} is before the session start")
        as_of = self.end_time if self.state is SessionState.CLOSED else self.start_time
        self._apply(self.drinks, self.foods, as_of)

    @property
    def is_active(self) -> bool:
        return self.state is SessionState.ACTIVE

    @property
    def duration(self) -> timedelta:
        return self.evaluated_at - self.start_time

    # -- transitions -----------------------------------------------------

    def add_drink(self, event: DrinkEvent, now: Optional[datetime] = None) -> "Session":
        self._ensure_active()
        if event.alcohol_grams < 0:
            raise InvalidEvent("alcohol_grams must be >= 0")
        self._check_new_event(event)
        drinks = tuple(sorted(self.drinks + (event,), key=lambda d: d.timestamp))
        self._apply(drinks, self.foods, self._as_of(now))
        logger.debug("session %s: added drink %s (%.1f g)", self.id, event.id, event.alcohol_grams)
        return self

    def add_food(self, event: FoodEvent, now: Optional[datetime] = None) -> "Session":
        self._ensure_active()
        if not 0 < event.absorption_factor <= 1:
            raise InvalidEvent("absorption_factor must be within (0, 1]")
        self._check_new_event(event)
        foods = tuple(sorted(self.foods + (event,), key=lambda f: f.timestamp))
        self._apply(self.drinks, foods, self._as_of(now))
        logger.debug("session %s: added food %s (factor %.2f)", self.id, event.id, event.absorption_factor)
        return self

    def remove_event(self, event_id: str, now: Optional[datetime] = None) -> "Session":
        self._ensure_active()
        drinks = tuple(d for d in self.drinks if d.id != event_id)
        foods = tuple(f for f in self.foods if f.id != event_id)
        if len(drinks) == len(self.drinks) and len(foods) == len(self.foods):
            raise NotFound(f"no event with id {event_id!r}")
        self._apply(drinks, foods, self._as_of(now))
        logger.debug("session %s: removed event %s", self.id, event_id)
        return self

    def tick(self, now: Optional[datetime] = None) -> "Session":
        """Recompute against the clock. Times before the start are ignored."""
        self._ensure_active()
        now = utcnow() if now is None else as_utc(now)
        if now < self.start_time:
            logger.debug("session %s: ignoring tick before start (%s)", self.id, now.isoformat())
            return self
        self._apply(self.drinks, self.foods, now)
        return self

    def end(self, now: Optional[datetime] = None) -> "Session":
        self._ensure_active()
        end_time = self._as_of(now)
        self._apply(self.drinks, self.foods, end_time)
        self.end_time = end_time
        self.state = SessionState.CLOSED
        logger.info("session %s ended at %s, bac %.4f", self.id, end_time.isoformat(), self.current_bac)
        return self

    # -- internals -------------------------------------------------------

    def _ensure_active(self) -> None:
        if self.state is not SessionState.ACTIVE:
            raise SessionClosed(f"session {self.id} is closed")

    def _check_new_event(self, event) -> None:
        if event.timestamp < self.start_time:
            raise InvalidEvent("event timestamp is before the session start")
        if any(e.id == event.id for e in self.drinks + self.foods):
            raise InvalidEvent(f"duplicate event id {event.id!r}")

    def _as_of(self, now: Optional[datetime]) -> datetime:
        now = utcnow() if now is None else as_utc(now)
        return max(now, self.start_time)

    def _apply(self, drinks: Sequence[DrinkEvent], foods: Sequence[FoodEvent], as_of: datetime) -> None:
        profile, config = self.profile, self.config
        current = compute_bac(profile, drinks, foods, as_of, config)
        series = list(generate_series(profile, drinks, foods, self.start_time, as_of, config))
        sober = hours_until(profile, drinks, foods, as_of, 0.0, config)
        legal = hours_until(profile, drinks, foods, as_of, config.legal_threshold, config)

        self.drinks = tuple(drinks)
        self.foods = tuple(foods)
        self.evaluated_at = as_of
        self.current_bac = current
        self.peak_bac = max(bac for _, bac in series)
        self.status = bac_status(current, config)
        self.sober_time = timedelta(hours=sober)
        self.legal_time = timedelta(hours=legal)
        self.bac_series = series

    # -- snapshots -------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready snapshot. Derived fields are informational only."""
        return {
            "id": self.id,
            "profile": self.profile.to_dict(),
            "state": self.state.value,
            "start_time": self.start_time.isoformat(),
            "end_time": self.end_time.isoformat() if self.end_time else None,
            "evaluated_at": self.evaluated_at.isoformat(),
            "drinks": [d.to_dict() for d in self.drinks],
            "foods": [f.to_dict() for f in self.foods],
            "current_bac": round(self.current_bac, 5),
            "peak_bac": round(self.peak_bac, 5),
            "status": self.status.value,
            "sober_time_hours": round(self.sober_time.total_seconds() / 3600.0, 4),
            "legal_time_hours": round(self.legal_time.total_seconds() / 3600.0, 4),
            "duration_hours": round(self.duration.total_seconds() / 3600.0, 4),
            "bac_series": [[t.isoformat(), round(bac, 5)] for t, bac in self.bac_series],
        }

    @classmethod
    def from_dict(cls, raw: Dict[str, Any], config: EngineConfig = DEFAULT_CONFIG) -> "Session":
        """Rebuild from a snapshot. Derived state is recomputed, never loaded.

        Active sessions come back evaluated at their last evaluation time;
        callers tick them before use.
        """
        if not isinstance(raw, dict):
            raise InvalidEvent("session payload must be an object")
        state = SessionState(raw.get("state", SessionState.ACTIVE.value))
        end_time = parse_timestamp(raw["end_time"]) if raw.get("end_time") else None
        session = cls(
            profile=profile_from_dict(raw.get("profile")),
            start_time=parse_timestamp(raw.get("start_time")),
            config=config,
            id=str(raw.get("id") or uuid.uuid4().hex),
            drinks=tuple(parse_drink(d) for d in raw.get("drinks") or []),
            foods=tuple(parse_food(f) for f in raw.get("foods") or []),
            end_time=end_time,
            state=state,
        )
        if state is SessionState.ACTIVE and raw.get("evaluated_at"):
            session.tick(parse_timestamp(raw["evaluated_at"]))
        return session
