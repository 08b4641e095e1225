import pytest
from pydantic import ValidationError

from routewise.agents.state import RouteState, merge_trip_details, replace_plan, stored_chain
from routewise.schemas.route import Preferences, RoutePlan, Segment


def test_route_state_is_immutable():
    state = RouteState(origin="Lyon")
    with pytest.raises(ValidationError):
        state.origin = "Nice"


def test_merge_replaces_destinations_and_keeps_unset_limits():
    state = RouteState(
        origin="Lyon",
        destinations=["Paris"],
        preferences=Preferences(max_daily_drive_hours=6, max_daily_distance_km=500),
    )

    merged = merge_trip_details(
        state,
        destinations=["Marseille", "Nice"],
        preferences=Preferences(avoid=["tolls"]),
    )

    assert merged.origin == "Lyon"
    assert merged.destinations == ["Marseille", "Nice"]
    assert merged.preferences.max_daily_drive_hours == 6
    assert merged.preferences.max_daily_distance_km == 500
    assert merged.preferences.avoid == ["tolls"]
    assert state.destinations == ["Paris"]


def test_merge_with_nothing_new_keeps_state():
    state = RouteState(origin="Lyon", destinations=["Nice"])
    assert merge_trip_details(state) == state


def test_replace_plan_overwrites_previous_plan():
    first = RoutePlan(warnings=["first"])
    second = RoutePlan(warnings=["second"])

    state = replace_plan(replace_plan(RouteState(), first), second)

    assert state.current_plan.warnings == ["second"]


def test_stored_chain_from_origin_and_destinations():
    state = RouteState(origin="New York", destinations=["new york", "Chicago", "Denver"])
    assert stored_chain(state) == ["New York", "Chicago", "Denver"]


def test_stored_chain_falls_back_to_current_plan():
    segment = Segment(origin="Lyon", destination="Nice", distance_km=470, duration_hours=4.5, valid=True)
    state = RouteState(current_plan=RoutePlan(segments=[segment]))

    assert stored_chain(state) == ["Lyon", "Nice"]


def test_stored_chain_of_empty_state():
    assert stored_chain(RouteState()) == []


def test_stored_destinations_take_priority_over_current_plan():
    segment = Segment(origin="Lyon", destination="Nice", distance_km=470, duration_hours=4.5, valid=True)
    state = RouteState(
        origin="Paris",
        destinations=["Bordeaux"],
        current_plan=RoutePlan(segments=[segment]),
    )

    assert stored_chain(state) == ["Paris", "Bordeaux"]
