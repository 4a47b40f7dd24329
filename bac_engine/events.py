"""Drink and food events.

Events are validated once when created; afterwards they only carry
normalized numbers and timezone-aware UTC timestamps.
"""

import math
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from bac_engine.drinks import DRINK_PRESETS, FOOD_PRESETS, grams_from_volume_abv
from bac_engine.errors import InvalidEvent


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Naive datetimes are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def hours_between(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / 3600.0


def parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        return as_utc(value)
    if isinstance(value, str) and value.strip():
        try:
            return as_utc(datetime.fromisoformat(value.strip().replace("Z", "+00:00")))
        except ValueError:
            pass
    raise InvalidEvent(f"invalid timestamp {value!r}")


def _new_id() -> str:
    return uuid.uuid4().hex


def _number(value: Any, name: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise InvalidEvent(f"{name} must be a number, got {value!r}")
    if math.isnan(number) or math.isinf(number):
        raise InvalidEvent(f"{name} must be finite")
    return number


@dataclass(frozen=True)
class DrinkEvent:
    timestamp: datetime
    alcohol_grams: float
    id: str = field(default_factory=_new_id)
    name: str = ""

    def __post_init__(self):
        if not isinstance(self.timestamp, datetime):
            raise InvalidEvent("drink timestamp must be a datetime")
        grams = _number(self.alcohol_grams, "alcohol_grams")
        if grams < 0:
            raise InvalidEvent("alcohol_grams must be >= 0")
        object.__setattr__(self, "timestamp", as_utc(self.timestamp))
        object.__setattr__(self, "alcohol_grams", grams)

    @classmethod
    def from_volume(
        cls,
        timestamp: datetime,
        volume_ml: float,
        abv_percent: float,
        name: str = "",
        id: Optional[str] = None,
    ) -> "DrinkEvent":
        """Create a drink from volume (mL) and ABV (%); grams are fixed here."""
        volume = _number(volume_ml, "volume_ml")
        abv = _number(abv_percent, "abv")
        if volume < 0:
            raise InvalidEvent("volume_ml must be >= 0")
        if not 0 <= abv <= 100:
            raise InvalidEvent("abv must be within [0, 100]")
        kwargs = {"name": name}
        if id:
            kwargs["id"] = id
        return cls(timestamp, grams_from_volume_abv(volume, abv), **kwargs)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp.isoformat(),
            "alcohol_grams": self.alcohol_grams,
            "name": self.name,
        }


@dataclass(frozen=True)
class FoodEvent:
    timestamp: datetime
    absorption_factor: float
    id: str = field(default_factory=_new_id)
    name: str = ""

    def __post_init__(self):
        if not isinstance(self.timestamp, datetime):
            raise InvalidEvent("food timestamp must be a datetime")
        factor = _number(self.absorption_factor, "absorption_factor")
        if not 0 < factor <= 1:
            raise InvalidEvent("absorption_factor must be within (0, 1]")
        object.__setattr__(self, "timestamp", as_utc(self.timestamp))
        object.__setattr__(self, "absorption_factor", factor)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp.isoformat(),
            "absorption_factor": self.absorption_factor,
            "name": self.name,
        }


def parse_drink(raw: Dict[str, Any], default_time: Optional[datetime] = None) -> DrinkEvent:
    """Build a DrinkEvent from loosely typed input (strings allowed for numbers).

    Accepts, in order of precedence: `alcohol_grams`; `volume_ml` + `abv`;
    or a `preset` key with optional `size`.
    """
    if not isinstance(raw, dict):
        raise InvalidEvent("drink must be an object")
    if raw.get("timestamp") is not None:
        timestamp = parse_timestamp(raw["timestamp"])
    elif default_time is not None:
        timestamp = as_utc(default_time)
    else:
        raise InvalidEvent("drink timestamp is required")
    name = str(raw.get("name") or "")
    event_id = str(raw["id"]) if raw.get("id") else None
    extra = {"id": event_id} if event_id else {}

    if raw.get("alcohol_grams") not in (None, ""):
        return DrinkEvent(timestamp, _number(raw["alcohol_grams"], "alcohol_grams"), name=name, **extra)
    if raw.get("volume_ml") not in (None, ""):
        return DrinkEvent.from_volume(timestamp, raw["volume_ml"], raw.get("abv"), name=name, id=event_id)

    preset = DRINK_PRESETS.get(str(raw.get("preset", "")))
    if preset is None:
        raise InvalidEvent("drink needs alcohol_grams, volume_ml and abv, or a known preset")
    size = str(raw.get("size") or "medium")
    if size not in preset.sizes:
        raise InvalidEvent(f"unknown size {size!r} for {preset.key}")
    volume, abv = preset.sizes[size]
    return DrinkEvent.from_volume(timestamp, volume, abv, name=name or preset.name, id=event_id)


def parse_food(raw: Dict[str, Any], default_time: Optional[datetime] = None) -> FoodEvent:
    """Build a FoodEvent from `absorption_factor` or a food `preset`."""
    if not isinstance(raw, dict):
        raise InvalidEvent("food must be an object")
    if raw.get("timestamp") is not None:
        timestamp = parse_timestamp(raw["timestamp"])
    elif default_time is not None:
        timestamp = as_utc(default_time)
    else:
        raise InvalidEvent("food timestamp is required")
    name = str(raw.get("name") or "")
    extra = {"id": str(raw["id"])} if raw.get("id") else {}

    if raw.get("absorption_factor") not in (None, ""):
        return FoodEvent(timestamp, _number(raw["absorption_factor"], "absorption_factor"), name=name, **extra)
    preset = FOOD_PRESETS.get(str(raw.get("preset", "")))
    if preset is None:
        raise InvalidEvent("food needs absorption_factor or a known preset")
    return FoodEvent(timestamp, preset.absorption_factor, name=name or preset.name, **extra)
