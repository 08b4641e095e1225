from routewise.schemas.route import Preferences, RoutePlan, RouteSummary, Segment
from routewise.tools.narrative import format_duration, format_route_message, generate_recommendations


def segment(origin, destination, km, hours, valid=True):
    return Segment(origin=origin, destination=destination, distance_km=km, duration_hours=hours, valid=valid)


def plan_of(*segments, **kwargs):
    segments = list(segments)
    return RoutePlan(segments=segments, summary=RouteSummary.from_segments(segments), **kwargs)


def test_format_duration():
    assert format_duration(5.5) == "5.5 hours"
    assert format_duration(26.0) == "1 day 2.0 hours"
    assert format_duration(48.0) == "2 days"


def test_relaxed_plan_has_no_recommendations():
    plan = plan_of(segment("Lyon", "Marseille", 315, 3.2), segment("Marseille", "Nice", 200, 2.3))
    assert generate_recommendations(plan) == []


def test_invalid_and_long_segments_are_flagged():
    plan = plan_of(
        segment("Lyon", "Madrid", 1100, 11, valid=False),
        segment("Madrid", "Seville", 530, 5.2),
    )

    recommendations = {r["type"]: r for r in generate_recommendations(plan)}

    assert set(recommendations) == {"invalid_segments", "long_segments"}
    assert recommendations["invalid_segments"]["segments"] == ["Lyon to Madrid"]
    assert recommendations["long_segments"]["segments"] == ["Lyon to Madrid (11.0 hours)"]


def test_intensive_trip_uses_the_plan_limits():
    days = [segment(f"Stop {i}", f"Stop {i + 1}", 300, 3) for i in range(8)]
    plan = plan_of(*days, preferences=Preferences(max_daily_drive_hours=3))

    types = [r["type"] for r in generate_recommendations(plan)]

    assert types == ["trip_too_intensive"]


def test_route_message_lists_days_and_warnings():
    plan = plan_of(
        segment("New York", "Columbus", 860, 8),
        segment("Columbus", "Chicago", 570, 5.5),
        warnings=["Destination 'X' resolved to 'Y'"],
    )

    message = format_route_message(plan)

    assert "1. New York → Columbus (860 km, 8.0 hours)" in message
    assert "2. Columbus → Chicago (570 km, 5.5 hours)" in message
    assert "Total: 1430 km, 13.5 hours" in message
    assert "- Destination 'X' resolved to 'Y'" in message


def test_failed_plan_message():
    plan = RoutePlan.failed("No routes could be calculated successfully", ["Failed to calculate route"], Preferences())
    message = format_route_message(plan)

    assert message.startswith("I couldn't calculate this route.")
    assert "- Failed to calculate route" in message
