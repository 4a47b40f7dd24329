"""Tests for the session state machine."""
from datetime import datetime, timedelta, timezone

import pytest

from bac_engine.calculations import BacStatus, compute_bac, widmark_rise
from bac_engine.drive import get_drive_advice
from bac_engine.errors import InvalidEvent, InvalidProfile, NotFound, SessionClosed
from bac_engine.events import DrinkEvent, FoodEvent
from bac_engine.profile import Profile, Sex
from bac_engine.session import Session, SessionState

T0 = datetime(2026, 1, 10, 20, 0, tzinfo=timezone.utc)


def hours(h):
    return T0 + timedelta(hours=h)


@pytest.fixture
def session():
    return Session(Profile(weight_kg=70, sex=Sex.MALE, id="p1"), T0)


def assert_invariants(s: Session):
    times = [t for t, _ in s.bac_series]
    assert all(a < b for a, b in zip(times, times[1:]))
    assert s.bac_series[-1][1] == pytest.approx(s.current_bac)
    assert s.current_bac >= 0
    assert [d.timestamp for d in s.drinks] == sorted(d.timestamp for d in s.drinks)
    assert [f.timestamp for f in s.foods] == sorted(f.timestamp for f in s.foods)


def test_new_session_is_sober(session):
    assert session.state is SessionState.ACTIVE
    assert session.current_bac == 0.0
    assert session.status is BacStatus.SAFE
    assert session.sober_time == timedelta(0)
    assert session.bac_series == [(T0, 0.0)]
    session.tick(hours(2))
    assert session.current_bac == 0.0
    assert session.bac_series == [(T0, 0.0), (hours(2), 0.0)]


def test_rejects_invalid_profile():
    with pytest.raises(InvalidProfile):
        Session(Profile(weight_kg=-70), T0)


def test_single_drink_scenario(session):
    session.add_drink(DrinkEvent(T0, 14), now=T0)
    expected = 14 / (70 * 1000 * 0.68) * 100
    assert session.current_bac == pytest.approx(expected)
    assert session.sober_time.total_seconds() / 3600 == pytest.approx(expected / 0.015, rel=1e-6)
    session.tick(hours(1))
    assert session.current_bac == pytest.approx(expected - 0.015)
    assert_invariants(session)


def test_food_scenario_lowers_bac(session):
    plain = Session(Profile(weight_kg=70, id="p1"), T0)
    plain.add_drink(DrinkEvent(T0, 14), now=T0)
    session.add_drink(DrinkEvent(T0, 14), now=T0)
    session.add_food(FoodEvent(T0, 0.6), now=T0)
    assert session.current_bac < plain.current_bac
    assert_invariants(session)


def test_two_drinks_scenario(session):
    session.add_drink(DrinkEvent(T0, 10), now=hours(1))
    session.add_drink(DrinkEvent(hours(1), 10), now=hours(1))
    rise = widmark_rise(10, 70, 0.68)
    assert session.current_bac == pytest.approx(rise + (rise - 0.015))


def test_drinks_kept_sorted(session):
    late = DrinkEvent(hours(2), 10)
    early = DrinkEvent(hours(1), 10)
    session.add_drink(late, now=hours(3))
    session.add_drink(early, now=hours(3))
    assert [d.id for d in session.drinks] == [early.id, late.id]
    assert_invariants(session)


def test_remove_unknown_event_leaves_session_unchanged(session):
    session.add_drink(DrinkEvent(T0, 14), now=hours(0.5))
    before = session.to_dict()
    with pytest.raises(NotFound):
        session.remove_event("missing", now=hours(1))
    assert session.to_dict() == before


def test_add_then_remove_restores_state(session):
    session.add_drink(DrinkEvent(T0, 14), now=hours(1))
    session.add_food(FoodEvent(hours(0.5), 0.7), now=hours(1))
    before_bac = session.current_bac
    before_series = list(session.bac_series)

    extra = DrinkEvent(hours(0.75), 20)
    session.add_drink(extra, now=hours(1))
    assert session.current_bac > before_bac
    session.remove_event(extra.id, now=hours(1))

    assert session.current_bac == pytest.approx(before_bac)
    assert session.bac_series == before_series


def test_remove_food(session):
    session.add_drink(DrinkEvent(T0, 14), now=T0)
    food = FoodEvent(T0, 0.5)
    session.add_food(food, now=T0)
    lowered = session.current_bac
    session.remove_event(food.id, now=T0)
    assert session.foods == ()
    assert session.current_bac > lowered


def test_end_then_add_is_rejected(session):
    session.add_drink(DrinkEvent(T0, 14), now=hours(0.5))
    session.end(hours(1))
    assert session.state is SessionState.CLOSED
    assert session.end_time == hours(1)
    before = session.to_dict()
    with pytest.raises(SessionClosed):
        session.add_drink(DrinkEvent(hours(1), 14), now=hours(1))
    for call in (
        lambda: session.add_food(FoodEvent(hours(1), 0.5)),
        lambda: session.remove_event(session.drinks[0].id),
        lambda: session.tick(hours(2)),
        lambda: session.end(hours(2)),
    ):
        with pytest.raises(SessionClosed):
            call()
    assert session.to_dict() == before


def test_end_recomputes_at_end_time(session):
    session.add_drink(DrinkEvent(T0, 30), now=T0)
    session.end(hours(1))
    assert session.current_bac == pytest.approx(compute_bac(session.profile, session.drinks, [], hours(1)))
    assert session.bac_series[-1][0] == hours(1)


def test_duration_follows_evaluation_time(session):
    assert session.duration == timedelta(0)
    session.tick(hours(1.5))
    assert session.duration == timedelta(hours=1.5)
    session.end(hours(2))
    assert session.duration == timedelta(hours=2)
    assert session.to_dict()["duration_hours"] == 2.0
    # Closed sessions stop the clock.
    assert Session.from_dict(session.to_dict()).duration == timedelta(hours=2)


def test_closed_session_requires_end_time():
    with pytest.raises(InvalidEvent):
        Session(Profile(weight_kg=70), T0, state=SessionState.CLOSED)

def test_invalid_events_rejected_without_mutation(session):
    session.add_drink(DrinkEvent(hours(1), 14), now=hours(1))
    before = session.to_dict()
    with pytest.raises(InvalidEvent):
        session.add_drink(DrinkEvent(hours(-1), 14), now=hours(1))
    with pytest.raises(InvalidEvent):
        session.add_drink(DrinkEvent(hours(2), 14, id=session.drinks[0].id), now=hours(2))
    with pytest.raises(InvalidEvent):
        session.add_food(FoodEvent(hours(-0.5), 0.5), now=hours(1))
    assert session.to_dict() == before


def test_tick_is_idempotent(session):
    session.add_drink(DrinkEvent(T0, 20), now=T0)
    session.tick(hours(1.5))
    first = (session.current_bac, session.status, list(session.bac_series))
    session.tick(hours(1.5))
    assert (session.current_bac, session.status, list(session.bac_series)) == first


def test_tick_before_start_is_ignored(session):
    session.add_drink(DrinkEvent(T0, 20), now=hours(1))
    before = session.to_dict()
    session.tick(hours(-1))
    assert session.to_dict() == before


def test_sober_time_root(session):
    session.add_drink(DrinkEvent(T0, 25), now=T0)
    session.add_drink(DrinkEvent(hours(0.5), 14), now=hours(1))
    now = session.evaluated_at
    args = (session.profile, session.drinks, session.foods)
    assert compute_bac(*args, now + session.sober_time) == pytest.approx(0.0, abs=1e-9)
    assert compute_bac(*args, now + session.sober_time - timedelta(minutes=1)) > 0


def test_status_and_legal_time(session):
    session.add_drink(DrinkEvent(T0, 60), now=T0)
    assert session.status is BacStatus.DANGER
    hours_to_legal = session.legal_time.total_seconds() / 3600
    assert hours_to_legal == pytest.approx((session.current_bac - 0.05) / 0.015, rel=1e-6)
    assert session.legal_time < session.sober_time

    session.tick(hours(3.5))
    # 0.126 - 0.0525 is between caution and danger
    assert session.status is BacStatus.CAUTION
    session.tick(hours(9))
    assert session.status is BacStatus.SAFE
    assert session.legal_time == timedelta(0)


def test_peak_bac_tracks_series_max(session):
    session.add_drink(DrinkEvent(T0, 30), now=hours(3))
    assert session.peak_bac == pytest.approx(widmark_rise(30, 70, 0.68))
    assert session.peak_bac > session.current_bac


def test_snapshot_roundtrip_recomputes(session):
    session.add_drink(DrinkEvent(T0, 30, name="Beer"), now=hours(1))
    session.add_food(FoodEvent(hours(0.5), 0.8), now=hours(1))
    payload = session.to_dict()
    payload["current_bac"] = 9.99  # stored derived values are ignored

    restored = Session.from_dict(payload)
    assert restored.id == session.id
    assert restored.drinks == session.drinks
    assert restored.foods == session.foods
    assert restored.current_bac == pytest.approx(session.current_bac)

    session.end(hours(2))
    closed = Session.from_dict(session.to_dict())
    assert closed.state is SessionState.CLOSED
    assert closed.current_bac == pytest.approx(session.current_bac)


def test_from_dict_rejects_bad_payload():
    with pytest.raises(InvalidEvent):
        Session.from_dict({"profile": {"weight_kg": 70}, "start_time": T0.isoformat(), "state": "closed"})
    with pytest.raises(InvalidProfile):
        Session.from_dict({"profile": {"weight_kg": 0}, "start_time": T0.isoformat()})


def test_drive_advice(session):
    assert get_drive_advice(session)["status"] == "ok"
    session.add_drink(DrinkEvent(T0, 60), now=T0)
    advice = get_drive_advice(session)
    assert advice["status"] == "do_not_drive"
    assert advice["legal_time_hours"] > 0
    session.tick(hours(8.2))
    assert get_drive_advice(session)["status"] == "caution"
