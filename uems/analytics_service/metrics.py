"""
Pure aggregation for the organizer and admin dashboards.

Nothing here touches the database; the routes load rows and hand them in.
"""

import math
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Mapping

HIGH_FILL_RATE = 70
LOW_FILL_RATE = 30
UPCOMING_LIMIT = 5
RECENT_DAYS = 7

TOP_EVENTS_LIMIT = 5
TOP_EVENT_MIN_FILL_RATE = 70
STRONG_FILL_RATE = 80
MODERATE_FILL_RATE = 50
BUSY_DAY_REGISTRATIONS = 5
BUSY_DAYS_THRESHOLD = 10


def round_half_up(value: float) -> int:
    """Nearest integer with .5 always rounded up; the built-in round() rounds halves to even."""
    return math.floor(value + 0.5)


def percent(part: float, whole: float) -> int:
    """Whole-number percentage; 0 when there is nothing to divide by."""
    if not whole:
        return 0
    return round_half_up(part / whole * 100)
def fill_rate(current_attendees: int, max_attendees: int) -> float:
    """Percentage of seats taken; 0 when the event has no capacity."""
    if not max_attendees:
        return 0.0
    return current_attendees / max_attendees * 100


def summarize_events(events: Iterable[Mapping[str, Any]], now: datetime) -> Dict[str, Any]:
    """
    Summarize a list of event rows.

    Each row needs: event_id, title, status, event_date, location,
    max_attendees, current_attendees, created_at, banner_image, images, videos.

    Registrations, capacity, fill rate and performance only count approved
    events. Media totals cover every event.
    """
    events = list(events)
    by_status: Dict[str, int] = {}
    for event in events:
        by_status[event["status"]] = by_status.get(event["status"], 0) + 1

    approved = [e for e in events if e["status"] == "approved"]

    total_registrations = 0
    total_capacity = 0
    high = 0
    low = 0
    for event in approved:
        attendees = event.get("current_attendees") or 0
        total_registrations += attendees
        total_capacity += event["max_attendees"] or 0
        if event["max_attendees"]:
            rate = fill_rate(attendees, event["max_attendees"])
            if rate >= HIGH_FILL_RATE:
                high += 1
            if rate < LOW_FILL_RATE:
                low += 1

    avg_fill_rate = percent(total_registrations, total_capacity)

    upcoming: List[Mapping[str, Any]] = sorted(
        (e for e in approved if e["event_date"] > now),
        key=lambda e: e["event_date"],
    )

    week_ago = now - timedelta(days=RECENT_DAYS)
    recent = sum(1 for e in events if e.get("created_at") and e["created_at"] >= week_ago)

    return {
        "summary": {
            "total_events": len(events),
            "approved_events": len(approved),
            "pending_events": by_status.get("pending", 0),
            "draft_events": by_status.get("draft", 0),
            "rejected_events": by_status.get("rejected", 0),
            "total_registrations": total_registrations,
            "total_capacity": total_capacity,
            "avg_fill_rate": avg_fill_rate,
            "upcoming_events": len(upcoming),
            "recent_events": recent,
        },
        "performance": {
            "high_performance_count": high,
            "low_performance_count": low,
            "average_performance": len(approved) - high - low,
        },
        "media": {
            "banners": sum(1 for e in events if e.get("banner_image")),
            "images": sum(len(e.get("images") or []) for e in events),
            "videos": sum(len(e.get("videos") or []) for e in events),
        },
        "upcoming_events": [
            {
                "event_id": e["event_id"],
                "title": e["title"],
                "event_date": e["event_date"],
                "location": e["location"],
                "max_attendees": e["max_attendees"],
                "current_attendees": e.get("current_attendees") or 0,
            }
            for e in upcoming[:UPCOMING_LIMIT]
        ],
    }


def top_events(events: Iterable[Mapping[str, Any]], limit: int = TOP_EVENTS_LIMIT) -> List[Dict[str, Any]]:
    """Approved events at or above 70% full, best filled first."""
    ranked = []
    for event in events:
        if event["status"] != "approved" or not event["max_attendees"]:
            continue
        attendees = event.get("current_attendees") or 0
        rate = fill_rate(attendees, event["max_attendees"])
        if rate >= TOP_EVENT_MIN_FILL_RATE:
            ranked.append((rate, event, attendees))

    ranked.sort(key=lambda item: item[0], reverse=True)
    return [
        {
            "event_id": event["event_id"],
            "title": event["title"],
            "event_date": event["event_date"],
            "location": event["location"],
            "category": event.get("category"),
            "fill_rate": round_half_up(rate),
            "max_attendees": event["max_attendees"],
            "current_attendees": attendees,
        }
        for rate, event, attendees in ranked[:limit]
    ]


def health_score(approval_rate: int, user_activity_rate: int, recent_events: int) -> int:
    if recent_events > 5:
        bonus = 20
    elif recent_events > 2:
        bonus = 10
    else:
        bonus = 0
    return min(100, round_half_up(approval_rate * 0.4 + user_activity_rate * 0.4 + bonus))


def summarize_system(
    event_stats: List[Mapping[str, Any]],
    user_stats: List[Mapping[str, Any]],
    popular_categories: List[Mapping[str, Any]],
    approved_events: Iterable[Mapping[str, Any]],
    registration_trends: List[Mapping[str, Any]],
    recent_activity: Mapping[str, int],
    now: datetime,
) -> Dict[str, Any]:
    """
    Build the admin's comprehensive analytics report.

    Args:
        event_stats: rows of {status, count}.
        user_stats: rows of {role, count, active_count}.
        popular_categories: rows of {category, count}.
        approved_events: event rows carrying current_attendees.
        registration_trends: rows of {date, count}, one per day, oldest first.
        recent_activity: {"events": n, "registrations": n} over the last week.
    """
    total_events = sum(row["count"] for row in event_stats)
    total_users = sum(row["count"] for row in user_stats)
    by_status = {row["status"]: row["count"] for row in event_stats}
    approved = by_status.get("approved", 0)
    active_users = sum(row.get("active_count") or 0 for row in user_stats)

    approval_rate = percent(approved, total_events)
    user_activity_rate = percent(active_users, total_users)
    recent_events = recent_activity.get("events", 0)
    score = health_score(approval_rate, user_activity_rate, recent_events)

    top = top_events(approved_events)
    trends = [{"date": row["date"], "count": row["count"]} for row in registration_trends]
    trend_total = sum(day["count"] for day in trends)

    peak_day = {"date": "", "count": 0}
    for day in trends:
        if day["count"] > peak_day["count"]:
            peak_day = day

    recommendations = []
    if approval_rate < 60:
        recommendations.append("Low approval rate: Review pending events more frequently.")
    if user_activity_rate < 70:
        recommendations.append("Low user activity: Consider engaging inactive users.")
    if total_events < 10:
        recommendations.append("Low event count: Encourage more event creation.")
    if recent_events < 2:
        recommendations.append("Low recent activity: Promote event creation to users.")

    if score >= 80:
        health_level = "Excellent"
    elif score >= 60:
        health_level = "Good"
    else:
        health_level = "Needs Attention"

    if recent_events > 5:
        growth_trend = "Growing"
    elif recent_events > 2:
        growth_trend = "Stable"
    else:
        growth_trend = "Slow"

    busy_days = sum(1 for day in trends if day["count"] > BUSY_DAY_REGISTRATIONS)

    return {
        "timestamp": now,
        "summary": {
            "total_events": total_events,
            "total_users": total_users,
            "approved_events": approved,
            "pending_events": by_status.get("pending", 0),
            "active_users": active_users,
            "approval_rate": approval_rate,
            "user_activity_rate": user_activity_rate,
            "system_health_score": score,
            "weekly_growth": recent_events,
            "recent_registrations": recent_activity.get("registrations", 0),
        },
        "statistics": {
            "event_stats": event_stats,
            "user_stats": user_stats,
            "recent_activity": dict(recent_activity),
            "popular_categories": popular_categories,
        },
        "performance": {
            "top_events": top,
            "total_top_events": len(top),
            "average_fill_rate": round_half_up(sum(e["fill_rate"] for e in top) / len(top)) if top else 0,
            "high_performance_events": sum(1 for e in top if e["fill_rate"] >= STRONG_FILL_RATE),
            "moderate_performance_events": sum(
                1 for e in top if MODERATE_FILL_RATE <= e["fill_rate"] < STRONG_FILL_RATE
            ),
        },
        "trends": {
            "registration_trends": trends,
            "daily_average": round_half_up(trend_total / len(trends)) if trends else 0,
            "peak_day": peak_day,
            "total_registrations": trend_total,
        },
        "insights": {
            "recommendations": recommendations,
            "health_level": health_level,
            "busy_periods": "High Activity" if busy_days > BUSY_DAYS_THRESHOLD else "Normal",
            "growth_trend": growth_trend,
        },
    }
