"""
BAC tracker CLI demo. Run from project root: python -m bac_engine.main
Creates a sample session, prints current BAC and projections, and optionally
saves a graph.
"""

import argparse
import logging
import os
import sys
from datetime import timedelta

from bac_engine.config import EngineConfig
from bac_engine.calculations import to_grams_per_liter
from bac_engine.events import DrinkEvent, FoodEvent, utcnow
from bac_engine.graph import save_bac_graph
from bac_engine.profile import Profile, parse_sex
from bac_engine.session import Session


def main(argv=None):
    parser = argparse.ArgumentParser(description="BAC tracker: log drinks and view BAC over time")
    parser.add_argument("--weight", type=float, default=75.0, help="Body weight (kg)")
    parser.add_argument("--sex", default="male", choices=["male", "female", "other"])
    parser.add_argument("--hours", type=float, default=2.0, help="Hours since the session started")
    parser.add_argument("--food", action="store_true", help="Add a full meal at the start")
    parser.add_argument("--graph", type=str, metavar="FILE", help="Save BAC graph to FILE (e.g. bac_graph.png)")
    args = parser.parse_args(argv)

    logging.basicConfig(level=os.environ.get("LOG_LEVEL", "WARNING"))

    config = EngineConfig.from_env()
    now = utcnow()
    start = now - timedelta(hours=args.hours)
    session = Session(Profile(weight_kg=args.weight, sex=parse_sex(args.sex)), start, config=config)

    # Demo: two beers at the start, one wine an hour in.
    session.add_drink(DrinkEvent.from_volume(start, 330, 5.0, name="Beer"), now=now)
    session.add_drink(DrinkEvent.from_volume(start, 330, 5.0, name="Beer"), now=now)
    session.add_drink(DrinkEvent.from_volume(start + timedelta(hours=1), 150, 12.0, name="Wine"), now=now)
    if args.food:
        session.add_food(FoodEvent(start, 0.65, name="Full meal"), now=now)

    bac = session.current_bac
    print(f"Weight: {args.weight} kg, {len(session.drinks)} drinks over {args.hours}h")
    print(f"BAC now: {bac:.3f}% ({to_grams_per_liter(bac):.2f} g/L), status: {session.status.value}")
    print(f"Peak BAC: {session.peak_bac:.3f}%")
    print(f"Sober in: {session.sober_time.total_seconds() / 3600:.1f}h")
    print(f"Under legal limit in: {session.legal_time.total_seconds() / 3600:.1f}h")
    print(f"Curve points: {len(session.bac_series)}")

    if args.graph:
        try:
            path = save_bac_graph(session, output=args.graph)
            print(f"Graph saved: {path}")
        except ImportError:
            print("matplotlib not installed. pip install matplotlib", file=sys.stderr)
            return 1

    return 0


if __name__ == "__main__":
    sys.exit(main() or 0)
