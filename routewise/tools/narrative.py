"""
Plain-text rendering of route plans.

These are pure functions of a RoutePlan; the conversational model that
normally narrates results is an external collaborator, so the chat workflow
falls back to format_route_message for its reply.
"""

from typing import List, Dict, Any

from ..schemas.route import RoutePlan

# Segments longer than this deserve a rest day nearby
LONG_SEGMENT_HOURS = 6
INTENSIVE_TRIP_DAYS = 7


def format_duration(hours: float) -> str:
    """
    Human readable duration.

    Example:
        format_duration(5.5)   -> "5.5 hours"
        format_duration(26.0)  -> "1 day 2.0 hours"
        format_duration(48.0)  -> "2 days"
    """
    if hours < 24:
        return f"{round(hours, 1)} hours"

    days = int(hours // 24)
    remaining = hours % 24
    label = f"{days} day{'s' if days != 1 else ''}"
    if remaining > 0:
        return f"{label} {round(remaining, 1)} hours"
    return label


def generate_recommendations(plan: RoutePlan) -> List[Dict[str, Any]]:
    """Advice derived from the final segments and the plan's preference snapshot."""
    recommendations = []
    prefs = plan.preferences.effective()

    invalid = [s for s in plan.segments if not s.valid]
    if invalid:
        recommendations.append({
            "type": "invalid_segments",
            "message": "Some segments still exceed your driving preferences. "
                       "Consider adjusting your route or extending your trip duration.",
            "segments": [f"{s.origin} to {s.destination}" for s in invalid],
        })

    total_hours = plan.summary.total_duration_hours
    if total_hours > prefs.max_daily_drive_hours * INTENSIVE_TRIP_DAYS:
        recommendations.append({
            "type": "trip_too_intensive",
            "message": f"This trip involves {total_hours:.1f} hours of driving. "
                       "Consider extending your trip duration or reducing destinations.",
            "suggestion": "Consider adding more rest days or reducing the number of destinations.",
        })

    long_segments = [s for s in plan.segments if s.duration_hours > LONG_SEGMENT_HOURS]
    if long_segments:
        recommendations.append({
            "type": "long_segments",
            "message": "Some segments are quite long. Consider adding rest days between these segments.",
            "segments": [
                f"{s.origin} to {s.destination} ({s.duration_text or format_duration(s.duration_hours)})"
                for s in long_segments
            ],
        })

    return recommendations


def format_route_message(plan: RoutePlan, recommendations: List[Dict[str, Any]] = None) -> str:
    """Render the plan as the assistant's reply."""
    if not plan.success or not plan.segments:
        lines = ["I couldn't calculate this route."]
        lines.extend(f"- {w}" for w in plan.warnings)
        return "\n".join(lines)

    lines = ["Route calculated.", ""]
    segments = plan.segments

    if len(segments) == 1:
        segment = segments[0]
        lines.append(f"Route: {segment.origin} → {segment.destination}")
        lines.append(f"Distance: {segment.distance_text or f'{segment.distance_km:.0f} km'}")
        lines.append(f"Duration: {segment.duration_text or format_duration(segment.duration_hours)}")
    else:
        lines.append("Day-by-day route:")
        for index, segment in enumerate(segments, start=1):
            distance = segment.distance_text or f"{segment.distance_km:.0f} km"
            duration = segment.duration_text or format_duration(segment.duration_hours)
            marker = "" if segment.valid else " (over daily limit)"
            lines.append(f"{index}. {segment.origin} → {segment.destination} ({distance}, {duration}){marker}")
        lines.append("")
        lines.append(
            f"Total: {plan.summary.total_distance_km:.0f} km, "
            f"{plan.summary.total_duration_hours:.1f} hours"
        )

    if plan.warnings:
        lines.append("")
        lines.append("Warnings:")
        lines.extend(f"- {w}" for w in plan.warnings)

    if recommendations:
        lines.append("")
        lines.append("Recommendations:")
        lines.extend(f"- {r['message']}" for r in recommendations)

    return "\n".join(lines)
