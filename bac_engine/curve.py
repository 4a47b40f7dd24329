"""BAC-over-time series for charts.

A BacSeries holds only its inputs and sample times; each iteration evaluates
the calculator again, so it can be walked any number of times.
"""

from datetime import datetime
from typing import Iterator, List, Sequence, Tuple

from bac_engine.calculations import compute_bac
from bac_engine.config import DEFAULT_CONFIG, EngineConfig
from bac_engine.events import DrinkEvent, FoodEvent
from bac_engine.profile import Profile, validate_profile

Sample = Tuple[datetime, float]


class BacSeries:
    def __init__(
        self,
        profile: Profile,
        drinks: Sequence[DrinkEvent],
        foods: Sequence[FoodEvent],
        start: datetime,
        end: datetime,
        config: EngineConfig = DEFAULT_CONFIG,
    ):
        self.profile = validate_profile(profile)
        self.drinks = tuple(drinks)
        self.foods = tuple(foods)
        self.start = start
        self.end = end
        self.config = config
        self._times = self._sample_times()

    def _sample_times(self) -> List[datetime]:
        start, end = self.start, self.end
        if end <= start:
            return [start]
        if not self.drinks:
            return [start, end]

        n = self.config.series_points
        step = (end - start) / (n - 1)
        times = {start + step * i for i in range(n - 1)}
        times.add(end)
        for event in self.drinks + self.foods:
            if start <= event.timestamp <= end:
                times.add(event.timestamp)
        return sorted(times)

    @property
    def times(self) -> List[datetime]:
        return list(self._times)

    def __len__(self) -> int:
        return len(self._times)

    def __iter__(self) -> Iterator[Sample]:
        if not self.drinks:
            for t in self._times:
                yield t, 0.0
            return
        for t in self._times:
            yield t, compute_bac(self.profile, self.drinks, self.foods, t, self.config)

    def __repr__(self):
        return f"BacSeries({self.start.isoformat()} -> {self.end.isoformat()}, {len(self)} samples)"


def generate_series(
    profile: Profile,
    drinks: Sequence[DrinkEvent],
    foods: Sequence[FoodEvent],
    start: datetime,
    end: datetime,
    config: EngineConfig = DEFAULT_CONFIG,
) -> BacSeries:
    """Samples at start, at every event inside [start, end], and on an even grid."""
    return BacSeries(profile, drinks, foods, start, end, config)
