"""
BAC estimation engine: Widmark-based BAC math, food modifiers, BAC curves,
and the drinking-session state machine.
Demo CLI from project root: python -m bac_engine.main
"""

from bac_engine.config import DEFAULT_CONFIG, EngineConfig
from bac_engine.errors import (
    BacError,
    InvalidEvent,
    InvalidProfile,
    NotFound,
    PersistenceError,
    SessionClosed,
)
from bac_engine.profile import Profile, Sex, StaticProfileProvider
from bac_engine.events import DrinkEvent, FoodEvent, parse_drink, parse_food
from bac_engine.calculations import (
    BacStatus,
    bac_status,
    compute_bac,
    food_modifier,
    hours_until,
    to_grams_per_liter,
    widmark_rise,
)
from bac_engine.curve import BacSeries, generate_series
from bac_engine.session import Session, SessionState
from bac_engine.session_store import SqliteSessionStore
from bac_engine.tracker import SessionTracker

__all__ = [
    "BacError",
    "BacSeries",
    "BacStatus",
    "DEFAULT_CONFIG",
    "DrinkEvent",
    "EngineConfig",
    "FoodEvent",
    "InvalidEvent",
    "InvalidProfile",
    "NotFound",
    "PersistenceError",
    "Profile",
    "Session",
    "SessionClosed",
    "SessionState",
    "SessionTracker",
    "Sex",
    "SqliteSessionStore",
    "StaticProfileProvider",
    "bac_status",
    "compute_bac",
    "food_modifier",
    "generate_series",
    "hours_until",
    "parse_drink",
    "parse_food",
    "to_grams_per_liter",
    "widmark_rise",
]
