import datetime
import math

from core.config import settings
from core.models import (
    ActivityStats,
    ActivityType,
    Difficulty,
    Goal,
    GoalPeriod,
    GoalType,
    HeartRateData,
    LocationPoint,
    SportActivity,
)
from core.progress import UserProgress, elevation_gain

EARTH_RADIUS_KM = 6371.0088


def _haversine_km(a: LocationPoint, b: LocationPoint) -> float:
    lat1, lon1, lat2, lon2 = map(math.radians, (a.latitude, a.longitude, b.latitude, b.longitude))
    dlat = lat2 - lat1
    dlon = lon2 - lon1
    h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(h))


class TrackerService:
    @staticmethod
    def calculate_calories(activity_type: ActivityType, duration: float, weight_kg: float | None = None) -> int:
        weight = settings.user_weight_kg if weight_kg is None else weight_kg
        hours = duration / 3600
        return int(activity_type.met_value * weight * hours)

    @staticmethod
    def route_distance_km(route: list[LocationPoint] | None) -> float | None:
        if not route or len(route) < 2:
            return None
        return sum(_haversine_km(a, b) for a, b in zip(route, route[1:]))

    @staticmethod
    def elevation_gain(route: list[LocationPoint] | None) -> float:
        return elevation_gain(route)

    @staticmethod
    def build_activity(
        activity_type: ActivityType,
        start_time: datetime.datetime,
        duration: float,
        difficulty: Difficulty = Difficulty.BEGINNER,
        distance: float | None = None,
        route: list[LocationPoint] | None = None,
        steps: int | None = None,
        heart_rate: int | None = None,
        notes: str | None = None,
        related_adventure_id: str | None = None,
        related_course_id: str | None = None,
        weight_kg: float | None = None,
    ) -> SportActivity:
        """
        Finalizes tracked data into an activity record.

        Distance falls back to the route length when not given; calories are
        estimated from the activity's MET value and body weight. A single
        heart-rate reading becomes a flat summary without zones.
        """
        if distance is None:
            distance = TrackerService.route_distance_km(route)
        heart_rate_data = None
        if heart_rate is not None:
            heart_rate_data = HeartRateData(average=heart_rate, max=heart_rate, min=heart_rate)
        return SportActivity(
            type=activity_type,
            start_time=start_time,
            duration=duration,
            distance=distance,
            calories=TrackerService.calculate_calories(activity_type, duration, weight_kg),
            steps=steps,
            heart_rate=heart_rate_data,
            route=route,
            notes=notes,
            difficulty=difficulty,
            related_adventure_id=related_adventure_id,
            related_course_id=related_course_id,
        )

    @staticmethod
    def period_start(period: GoalPeriod, now: datetime.datetime) -> datetime.datetime:
        day_start = now.replace(hour=0, minute=0, second=0, microsecond=0)
        if period == GoalPeriod.DAILY:
            return day_start
        if period == GoalPeriod.WEEKLY:
            return day_start - datetime.timedelta(days=day_start.weekday())
        return day_start.replace(day=1)

    @staticmethod
    def get_stats(progress: UserProgress, period: GoalPeriod, now: datetime.datetime | None = None) -> ActivityStats:
        now = now or datetime.datetime.now()
        start = TrackerService.period_start(period, now)
        stats = ActivityStats()
        for activity in progress.activities:
            if activity.start_time < start:
                continue
            stats.total_distance += activity.distance or 0.0
            stats.total_duration += activity.duration
            stats.total_calories += activity.calories
            stats.activity_count[activity.type] = stats.activity_count.get(activity.type, 0) + 1
        return stats

    @staticmethod
    def goal_progress(goal: Goal, stats: ActivityStats) -> float:
        """Current value of the metric a goal tracks, in the goal's unit."""
        if goal.type == GoalType.DISTANCE:
            return stats.total_distance
        if goal.type == GoalType.DURATION:
            return stats.total_duration / 60
        if goal.type == GoalType.CALORIES:
            return float(stats.total_calories)
        return float(stats.activities_total)
