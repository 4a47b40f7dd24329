"""Engine configuration: every tunable constant of the BAC model lives here.

Units: BAC is percent (g/dL). Elimination is percent per hour.
"""

import os
from dataclasses import dataclass, field
from datetime import timedelta
from types import MappingProxyType
from typing import Mapping, Optional

# Widmark distribution ratio (r) per sex. "other" sits between the two.
DEFAULT_GENDER_FACTORS = {
    "male": 0.68,
    "female": 0.55,
    "other": 0.615,
}

ELIMINATION_PER_HOUR = 0.015

CAUTION_BAC = 0.03
DANGER_BAC = 0.08
LEGAL_LIMIT_BAC = 0.05


@dataclass(frozen=True)
class EngineConfig:
    elimination_rate: float = ELIMINATION_PER_HOUR
    caution_threshold: float = CAUTION_BAC
    danger_threshold: float = DANGER_BAC
    legal_threshold: float = LEGAL_LIMIT_BAC
    food_window: timedelta = timedelta(hours=2)
    food_during_window: timedelta = timedelta(minutes=15)
    food_weight_before: float = 1.0
    food_weight_during: float = 0.8
    food_weight_after: float = 0.6
    # Stored as a read-only mapping; not part of the hash.
    gender_factors: Mapping[str, float] = field(default_factory=lambda: dict(DEFAULT_GENDER_FACTORS), hash=False)
    series_points: int = 7

    def __post_init__(self):
        object.__setattr__(self, "gender_factors", MappingProxyType(dict(self.gender_factors)))
        if self.elimination_rate <= 0:
            raise ValueError("elimination_rate must be > 0")
        if not 0 <= self.caution_threshold <= self.danger_threshold:
            raise ValueError("thresholds must satisfy 0 <= caution <= danger")
        if self.legal_threshold < 0:
            raise ValueError("legal_threshold must be >= 0")
        if self.food_window < timedelta(0) or self.food_during_window < timedelta(0):
            raise ValueError("food windows must be non-negative")
        for name in ("food_weight_before", "food_weight_during", "food_weight_after"):
            weight = getattr(self, name)
            if not 0 <= weight <= 1:
                raise ValueError(f"{name} must be within [0, 1]")
        missing = set(DEFAULT_GENDER_FACTORS) - set(self.gender_factors)
        if missing:
            raise ValueError(f"gender_factors missing: {', '.join(sorted(missing))}")
        if any(r <= 0 for r in self.gender_factors.values()):
            raise ValueError("gender factors must be > 0")
        if self.series_points < 2:
            raise ValueError("series_points must be >= 2")

    @property
    def food_window_hours(self) -> float:
        return self.food_window.total_seconds() / 3600.0

    @property
    def food_during_hours(self) -> float:
        return self.food_during_window.total_seconds() / 3600.0

    def distribution_ratio(self, sex) -> float:
        """Widmark r for a `Sex` member or its string value."""
        key = getattr(sex, "value", sex)
        return self.gender_factors[str(key).lower()]

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "EngineConfig":
        """Build a config from BAC_* environment variables, falling back to defaults."""
        env = os.environ if environ is None else environ

        def _float(name: str, default: float) -> float:
            raw = env.get(name)
            if raw is None or raw.strip() == "":
                return default
            try:
                return float(raw)
            except ValueError:
                raise ValueError(f"{name} must be a number, got {raw!r}")

        factors = dict(DEFAULT_GENDER_FACTORS)
        for key in factors:
            factors[key] = _float(f"BAC_R_{key.upper()}", factors[key])

        return cls(
            elimination_rate=_float("BAC_ELIMINATION_RATE", ELIMINATION_PER_HOUR),
            caution_threshold=_float("BAC_CAUTION_THRESHOLD", CAUTION_BAC),
            danger_threshold=_float("BAC_DANGER_THRESHOLD", DANGER_BAC),
            legal_threshold=_float("BAC_LEGAL_THRESHOLD", LEGAL_LIMIT_BAC),
            food_window=timedelta(hours=_float("BAC_FOOD_WINDOW_HOURS", 2.0)),
            gender_factors=factors,
            series_points=int(_float("BAC_SERIES_POINTS", 7)),
        )


DEFAULT_CONFIG = EngineConfig()
