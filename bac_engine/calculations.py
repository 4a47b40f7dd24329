"""BAC calculations using Widmark-style rise and linear elimination.

Model:
- Rise: BAC = [grams / (body_weight_g * r)] * 100, in percent (g/dL)
- r from config: 0.68 (male), 0.55 (female)
- Elimination: single pool losing `elimination_rate` percentage points per
  hour, floored at zero. While the pool never empties this equals the sum
  of rises minus rate * hours since the earliest drink.
- Food: each drink's grams are scaled by the strongest nearby food event.
"""

from enum import Enum
from datetime import datetime
from typing import Iterable, List, Optional, Sequence

from bac_engine.config import DEFAULT_CONFIG, EngineConfig
from bac_engine.events import DrinkEvent, FoodEvent, hours_between
from bac_engine.profile import Profile, validate_profile


class BacStatus(str, Enum):
    SAFE = "safe"
    CAUTION = "caution"
    DANGER = "danger"


def widmark_rise(grams_alcohol: float, weight_kg: float, r: float) -> float:
    """Immediate BAC rise (%) from a single dose of alcohol."""
    raw = grams_alcohol / (weight_kg * 1000.0 * r)
    return max(0.0, raw * 100.0)


def to_grams_per_liter(bac_percent: float) -> float:
    """Percent BAC (g/dL) to g/L."""
    return bac_percent * 10.0


def food_modifier(
    drink: DrinkEvent,
    foods: Iterable[FoodEvent],
    config: EngineConfig = DEFAULT_CONFIG,
) -> float:
    """Fraction of the drink's alcohol still absorbed, in (0, 1].

    The qualifying food with the lowest absorption factor wins; ties go to the
    food closest to the drink. Its effect is weighted by timing.
    """
    window = config.food_window_hours
    best = None
    for food in foods:
        offset = hours_between(drink.timestamp, food.timestamp)
        if abs(offset) > window:
            continue
        key = (food.absorption_factor, abs(offset))
        if best is None or key < best[0]:
            best = (key, food, offset)

    if best is None:
        return 1.0
    _, food, offset = best
    if abs(offset) <= config.food_during_hours:
        weight = config.food_weight_during
    elif offset < 0:
        weight = config.food_weight_before
    else:
        weight = config.food_weight_after
    return 1.0 - (1.0 - food.absorption_factor) * weight


def compute_bac(
    profile: Profile,
    drinks: Sequence[DrinkEvent],
    foods: Sequence[FoodEvent],
    as_of: datetime,
    config: EngineConfig = DEFAULT_CONFIG,
) -> float:
    """BAC (%) at `as_of`. Drinks after `as_of` contribute nothing."""
    validate_profile(profile)
    r = config.distribution_ratio(profile.sex)
    beta = config.elimination_rate

    bac = 0.0
    last: Optional[datetime] = None
    for drink in sorted(drinks, key=lambda d: d.timestamp):
        if drink.timestamp > as_of:
            break
        if last is not None:
            bac = max(0.0, bac - beta * hours_between(last, drink.timestamp))
        grams = drink.alcohol_grams * food_modifier(drink, foods, config)
        bac += widmark_rise(grams, profile.weight_kg, r)
        last = drink.timestamp

    if last is None:
        return 0.0
    return max(0.0, bac - beta * hours_between(last, as_of))


def hours_until(
    profile: Profile,
    drinks: Sequence[DrinkEvent],
    foods: Sequence[FoodEvent],
    now: datetime,
    target: float = 0.0,
    config: EngineConfig = DEFAULT_CONFIG,
) -> float:
    """Smallest hours >= 0 after `now` at which BAC is down to `target`.

    BAC only falls linearly between drinks, so each segment up to the next
    drink is solved in closed form.
    """
    beta = config.elimination_rate
    bac = compute_bac(profile, drinks, foods, now, config)
    if bac <= target:
        return 0.0

    t = now
    later: List[DrinkEvent] = sorted((d for d in drinks if d.timestamp > now), key=lambda d: d.timestamp)
    for drink in later:
        gap = hours_between(t, drink.timestamp)
        if bac - beta * gap <= target:
            break
        t = drink.timestamp
        bac = compute_bac(profile, drinks, foods, t, config)
    return hours_between(now, t) + (bac - target) / beta


def bac_status(bac: float, config: EngineConfig = DEFAULT_CONFIG) -> BacStatus:
    if bac >= config.danger_threshold:
        return BacStatus.DANGER
    if bac >= config.caution_threshold:
        return BacStatus.CAUTION
    return BacStatus.SAFE
