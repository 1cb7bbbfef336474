import datetime

import pytest

from core.models import ActivityType, Difficulty, Goal, GoalPeriod, GoalType, LocationPoint, SportActivity
from core.progress import UserProgress
from services.tracker_service import TrackerService

NOW = datetime.datetime(2026, 3, 11, 15, 0)  # Wednesday


def _point(lat, lon, alt=0.0):
    return LocationPoint(latitude=lat, longitude=lon, altitude=alt, timestamp=NOW)


def _activity(start, duration=1800, distance=2.0, calories=100, activity_type=ActivityType.HIKING):
    return SportActivity(type=activity_type, start_time=start, duration=duration, calories=calories, distance=distance)


def test_calculate_calories_uses_met_and_weight():
    assert TrackerService.calculate_calories(ActivityType.HIKING, 3600, weight_kg=70) == 420
    assert TrackerService.calculate_calories(ActivityType.YOGA, 1800, weight_kg=80) == 120


def test_route_distance_km_requires_two_points():
    assert TrackerService.route_distance_km(None) is None
    assert TrackerService.route_distance_km([_point(0, 0)]) is None


def test_route_distance_km_one_degree_of_latitude():
    distance = TrackerService.route_distance_km([_point(0, 0), _point(1, 0)])
    assert distance == pytest.approx(111.2, abs=0.1)


def test_build_activity_derives_distance_and_calories():
    route = [_point(0, 0, 100), _point(0.01, 0, 180)]
    activity = TrackerService.build_activity(
        ActivityType.RUNNING,
        start_time=NOW,
        duration=3600,
        difficulty=Difficulty.ADVANCED,
        route=route,
        heart_rate=140,
        weight_kg=60,
    )
    assert activity.distance == pytest.approx(1.11, abs=0.01)
    assert activity.calories == 510
    assert activity.heart_rate.average == 140
    assert activity.difficulty == Difficulty.ADVANCED
    assert TrackerService.elevation_gain(activity.route) == 80


def test_build_activity_keeps_explicit_distance():
    activity = TrackerService.build_activity(ActivityType.HIKING, NOW, 600, distance=3.0, weight_kg=70)
    assert activity.distance == 3.0
    assert activity.route is None


def test_period_start():
    assert TrackerService.period_start(GoalPeriod.DAILY, NOW) == datetime.datetime(2026, 3, 11)
    assert TrackerService.period_start(GoalPeriod.WEEKLY, NOW) == datetime.datetime(2026, 3, 9)
    assert TrackerService.period_start(GoalPeriod.MONTHLY, NOW) == datetime.datetime(2026, 3, 1)


def test_get_stats_filters_by_period():
    progress = UserProgress()
    progress.activities = [
        _activity(datetime.datetime(2026, 2, 20, 9, 0)),
        _activity(datetime.datetime(2026, 3, 2, 9, 0), activity_type=ActivityType.YOGA, distance=None),
        _activity(datetime.datetime(2026, 3, 10, 9, 0)),
        _activity(datetime.datetime(2026, 3, 11, 7, 0), distance=3.5, calories=250),
    ]
    daily = TrackerService.get_stats(progress, GoalPeriod.DAILY, NOW)
    assert daily.activities_total == 1
    assert daily.total_distance == 3.5
    assert daily.total_calories == 250

    weekly = TrackerService.get_stats(progress, GoalPeriod.WEEKLY, NOW)
    assert weekly.activities_total == 2
    assert weekly.total_distance == 5.5

    monthly = TrackerService.get_stats(progress, GoalPeriod.MONTHLY, NOW)
    assert monthly.activities_total == 3
    assert monthly.activity_count == {ActivityType.YOGA: 1, ActivityType.HIKING: 2}
    assert monthly.total_duration == 5400


def test_goal_progress_units():
    progress = UserProgress()
    progress.activities = [_activity(NOW, duration=2700, distance=4.0, calories=320)]
    stats = TrackerService.get_stats(progress, GoalPeriod.DAILY, NOW)

    def goal(goal_type):
        return Goal(type=goal_type, target=1, period=GoalPeriod.DAILY, start_date=NOW)

    assert TrackerService.goal_progress(goal(GoalType.DISTANCE), stats) == 4.0
    assert TrackerService.goal_progress(goal(GoalType.DURATION), stats) == 45
    assert TrackerService.goal_progress(goal(GoalType.CALORIES), stats) == 320
    assert TrackerService.goal_progress(goal(GoalType.FREQUENCY), stats) == 1
