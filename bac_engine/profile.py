"""Biometric profile snapshot used by the calculator."""

import math
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict

from bac_engine.errors import InvalidProfile


class Sex(str, Enum):
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


@dataclass(frozen=True)
class Profile:
    weight_kg: float
    sex: Sex = Sex.MALE
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    age: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "weight_kg": self.weight_kg, "sex": self.sex.value, "age": self.age}


def validate_profile(profile: Profile) -> Profile:
    """Raise InvalidProfile unless the weight can be divided by."""
    weight = profile.weight_kg
    if not isinstance(weight, (int, float)) or math.isnan(weight) or math.isinf(weight) or weight <= 0:
        raise InvalidProfile(f"weight_kg must be a positive number, got {weight!r}")
    if not isinstance(profile.sex, Sex):
        raise InvalidProfile(f"unknown sex {profile.sex!r}")
    return profile


def parse_sex(value: Any) -> Sex:
    try:
        return Sex(str(value).strip().lower())
    except ValueError:
        raise InvalidProfile(f"sex must be male, female or other, got {value!r}")


def profile_from_dict(raw: Dict[str, Any]) -> Profile:
    if not isinstance(raw, dict):
        raise InvalidProfile("profile must be an object")
    try:
        weight = float(raw.get("weight_kg"))
    except (TypeError, ValueError):
        raise InvalidProfile("weight_kg is required")
    try:
        age = int(raw.get("age") or 0)
    except (TypeError, ValueError):
        age = 0
    kwargs = {"weight_kg": weight, "sex": parse_sex(raw.get("sex", "male")), "age": age}
    if raw.get("id"):
        kwargs["id"] = str(raw["id"])
    return validate_profile(Profile(**kwargs))


@dataclass
class StaticProfileProvider:
    """Profile provider backed by a single fixed profile."""

    profile: Profile

    def get_active_profile(self) -> Profile:
        return self.profile
