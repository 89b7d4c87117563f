"""
Analytics over the stored daily entries.

This module handles:
- Averages over a window of entries (sparse: days without an entry are skipped)
- Goal progress percentages
- Trend classification between two windows
- Dense, gap-filled chart series
- Summary statistics, insights and achievement badges

Nothing here writes to the store.
"""

import logging
import math
from datetime import date, timedelta

from calculations import WEEKDAY_LABELS, current_date
from errors import InputError
from schemas import Achievement, Averages, ChartPoint, Goals, Insight, SummaryStats, UserProfile
from store import RecordStore

logger = logging.getLogger(__name__)

METRICS = ("water", "calories", "steps")
TREND_THRESHOLD = 10


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def _as_date(value) -> date:
    if value is None:
        return current_date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(value)


def goals_from_profile(profile: UserProfile | None) -> Goals:
    if profile is None:
        return Goals()
    return Goals(
        water=profile.daily_water_goal_ml,
        calories=profile.daily_calorie_goal,
        steps=profile.daily_step_goal,
    )


async def averages_over_range(store: RecordStore, start_date: str, end_date: str) -> Averages:
    """Mean of each metric over the entries found; days_tracked counts entries, not days."""
    entries = await store.get_entries_in_range(start_date, end_date)
    if not entries:
        return Averages()

    count = len(entries)
    return Averages(
        water=_round_half_up(sum(entry.water_ml for entry in entries) / count),
        calories=_round_half_up(sum(entry.calories for entry in entries) / count),
        steps=_round_half_up(sum(entry.steps for entry in entries) / count),
        days_tracked=count,
    )


def progress_percentage(current: float, goal: float) -> float:
    if goal == 0:
        return 0
    return min(current / goal * 100, 100)


def classify_trend(current: Averages, previous: Averages) -> str:
    """Compare two windows: "new", "improving", "declining" or "stable".

    Metrics with a zero baseline in the previous window are left out of the
    average change.
    """
    if not previous.water and not previous.calories and not previous.steps:
        return "new"

    changes = []
    for metric in METRICS:
        before = getattr(previous, metric)
        if not before:
            continue
        changes.append((getattr(current, metric) - before) / before * 100)

    average_change = sum(changes) / len(changes)
    if average_change > TREND_THRESHOLD:
        return "improving"
    if average_change < -TREND_THRESHOLD:
        return "declining"
    return "stable"


async def chart_series(store: RecordStore, days: int = 7, today=None) -> list[ChartPoint]:
    """Exactly ``days`` daily buckets ending today, zero-filled where nothing was stored."""
    if isinstance(days, bool) or not isinstance(days, int) or days < 0:
        raise InputError(f"Invalid number of days: {days!r}")
    if days == 0:
        return []

    end = _as_date(today)
    start = end - timedelta(days=days - 1)
    entries = await store.get_entries_in_range(start.isoformat(), end.isoformat())
    by_date = {entry.date: entry for entry in entries}

    series = []
    for offset in range(days):
        day = start + timedelta(days=offset)
        entry = by_date.get(day.isoformat())
        series.append(
            ChartPoint(
                date=day.isoformat(),
                water=entry.water_ml if entry else 0,
                calories=entry.calories if entry else 0,
                steps=entry.steps if entry else 0,
                label=WEEKDAY_LABELS[day.weekday()],
            )
        )
    return series


async def summary_stats(store: RecordStore, today=None) -> SummaryStats:
    """Today, the 7 days ending today, the 7 days before that, and the trend between them."""
    end = _as_date(today)
    this_week_start = end - timedelta(days=6)
    last_week_end = this_week_start - timedelta(days=1)
    last_week_start = last_week_end - timedelta(days=6)

    today_data = await averages_over_range(store, end.isoformat(), end.isoformat())
    this_week = await averages_over_range(store, this_week_start.isoformat(), end.isoformat())
    last_week = await averages_over_range(store, last_week_start.isoformat(), last_week_end.isoformat())

    trend = classify_trend(this_week, last_week)
    logger.info(f"Summary for week ending {end}: trend={trend}, days_tracked={this_week.days_tracked}")
    return SummaryStats(today=today_data, this_week=this_week, last_week=last_week, trend=trend)


INSIGHT_RULES = {
    "water": (
        Insight(
            type="water_low",
            message="💡 Try setting reminders to drink water regularly throughout the day.",
            category="hydration",
        ),
        Insight(
            type="water_excellent",
            message="🎉 Excellent hydration! You're meeting your water goals consistently.",
            category="hydration",
        ),
    ),
    "calories": (
        Insight(
            type="calories_low",
            message="💡 Consider planning your meals to ensure you're getting enough nutrition.",
            category="nutrition",
        ),
        Insight(
            type="calories_good",
            message="🎉 Great job maintaining your calorie goals! Keep up the balanced approach.",
            category="nutrition",
        ),
    ),
    "steps": (
        Insight(
            type="steps_low",
            message="💡 Try taking short walks during breaks or using stairs instead of elevators.",
            category="activity",
        ),
        Insight(
            type="steps_excellent",
            message="🎉 Fantastic activity level! You're consistently meeting your step goals.",
            category="activity",
        ),
    ),
}

TREND_INSIGHTS = {
    "improving": Insight(
        type="trend_positive",
        message="📈 You're on an upward trend! Keep up the great progress.",
        category="motivation",
    ),
    "declining": Insight(
        type="trend_negative",
        message="📉 Progress has slowed down. Consider adjusting your goals or routine.",
        category="motivation",
    ),
}


def insights(current: Averages, goals: Goals, trend: str) -> list[Insight]:
    result = []
    for metric in METRICS:
        low, great = INSIGHT_RULES[metric]
        progress = progress_percentage(getattr(current, metric), getattr(goals, metric))
        if progress < 50:
            result.append(low.model_copy())
        elif progress >= 100:
            result.append(great.model_copy())

    if trend in TREND_INSIGHTS:
        result.append(TREND_INSIGHTS[trend].model_copy())
    return result


GOAL_BADGES = {
    "water": Achievement(
        type="water_goal",
        title="💧 Hydration Master",
        description="Reached daily water goal!",
        icon="water",
    ),
    "calories": Achievement(
        type="calorie_goal",
        title="🔥 Energy Champion",
        description="Reached daily calorie goal!",
        icon="restaurant",
    ),
    "steps": Achievement(
        type="step_goal",
        title="🚶 Step Warrior",
        description="Reached daily step goal!",
        icon="walk",
    ),
}

# (days tracked, badge)
STREAK_BADGES = (
    (
        7,
        Achievement(
            type="week_streak",
            title="📅 Week Warrior",
            description="Tracked for 7 consecutive days!",
            icon="calendar",
        ),
    ),
    (
        30,
        Achievement(
            type="month_streak",
            title="🏆 Health Hero",
            description="Tracked for 30 consecutive days!",
            icon="trophy",
        ),
    ),
)


def achievements(current: Averages, goals: Goals) -> list[Achievement]:
    badges = [GOAL_BADGES[metric].model_copy() for metric in METRICS if getattr(current, metric) >= getattr(goals, metric)]
    badges.extend(badge.model_copy() for days, badge in STREAK_BADGES if current.days_tracked >= days)
    return badges
