"""Drink and food presets and alcohol content helpers.

Volumes in mL, ABV in percent (e.g. 5.0 for 5%).
"""

from dataclasses import dataclass
from typing import Dict, List, Tuple

# Ethanol density (g/mL) for volume x ABV -> grams.
ETHANOL_DENSITY = 0.789


@dataclass(frozen=True)
class DrinkPreset:
    """A drink category with per-size volume (mL) and ABV (%)."""

    key: str
    name: str
    sizes: Dict[str, Tuple[float, float]]


@dataclass(frozen=True)
class FoodPreset:
    key: str
    name: str
    absorption_factor: float  # fraction still absorbed; lower blunts more


DRINK_PRESETS = {
    "beer": DrinkPreset("beer", "Beer", {"small": (250, 4.5), "medium": (330, 5.0), "large": (500, 5.5)}),
    "wine": DrinkPreset("wine", "Wine", {"small": (125, 11.5), "medium": (150, 12.0), "large": (250, 12.5)}),
    "spirits": DrinkPreset("spirits", "Spirits", {"small": (30, 38.0), "medium": (40, 40.0), "large": (60, 42.0)}),
    "cocktail": DrinkPreset("cocktail", "Cocktail", {"small": (150, 10.0), "medium": (200, 12.5), "large": (300, 15.0)}),
}

FOOD_PRESETS = {
    "snack": FoodPreset("snack", "Snack", 0.9),
    "light_meal": FoodPreset("light_meal", "Light meal", 0.8),
    "full_meal": FoodPreset("full_meal", "Full meal", 0.65),
    "heavy_meal": FoodPreset("heavy_meal", "Heavy meal", 0.5),
}


def grams_from_volume_abv(volume_ml: float, abv_percent: float) -> float:
    """Convert millilitres and ABV (0 to 100) to grams of ethanol."""
    return volume_ml * (abv_percent / 100.0) * ETHANOL_DENSITY


def list_drink_presets() -> List[dict]:
    """Presets with grams per size, for UI pickers."""
    return [
        {
            "key": p.key,
            "name": p.name,
            "sizes": {
                size: {"volume_ml": vol, "abv": abv, "alcohol_grams": round(grams_from_volume_abv(vol, abv), 2)}
                for size, (vol, abv) in p.sizes.items()
            },
        }
        for p in DRINK_PRESETS.values()
    ]


def list_food_presets() -> List[dict]:
    return [{"key": p.key, "name": p.name, "absorption_factor": p.absorption_factor} for p in FOOD_PRESETS.values()]
