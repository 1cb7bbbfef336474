import datetime

import pytest

from core.models import (
    ActivityType,
    Challenge,
    ChallengeType,
    Course,
    CourseModule,
    Difficulty,
    Goal,
    GoalPeriod,
    GoalType,
    Lesson,
    LocationPoint,
    Milestone,
    MilestoneType,
    SportActivity,
)
from core.progress import UserProgress, calculate_grade, elevation_gain, quiz_points
from core.quiz_models import Question, Quiz, QuizCategory

NOW = datetime.datetime(2026, 3, 10, 12, 0)
USER = "42"


def _activity(
    start=NOW,
    duration=600,
    difficulty=Difficulty.ADVANCED,
    activity_type=ActivityType.HIKING,
    distance=None,
    calories=100,
    **kwargs,
):
    return SportActivity(
        type=activity_type,
        start_time=start,
        duration=duration,
        calories=calories,
        difficulty=difficulty,
        distance=distance,
        **kwargs,
    )


def _empty_progress():
    return UserProgress()


def _course():
    return Course(
        id="c1",
        title="Knots",
        modules=[
            CourseModule(id="m1", title="Basics", lessons=[Lesson(id="l1", title="One"), Lesson(id="l2", title="Two")]),
            CourseModule(id="m2", title="Advanced", lessons=[Lesson(id="l3", title="Three")]),
        ],
    )


def _quiz(difficulty=Difficulty.ADVANCED, count=10, required=8):
    questions = [Question(text=f"Q{i}", options=["a", "b"], correct_answer=0) for i in range(count)]
    return Quiz(
        title="Navigation Skills - Advanced",
        description="",
        category=QuizCategory.NAVIGATION,
        difficulty=difficulty,
        questions=questions,
        required_score=required,
    )


def test_create_default_seeds_goals_and_milestones():
    progress = UserProgress.create_default(NOW)
    assert len(progress.goals) == 3
    assert {g.type for g in progress.goals} == {GoalType.DISTANCE, GoalType.DURATION, GoalType.CALORIES}
    assert all(g.period == GoalPeriod.DAILY for g in progress.goals)
    assert len(progress.milestones) == 5
    assert progress.level == 1
    assert progress.total_points == 0


def test_mark_adventure_completed_points_and_level():
    progress = _empty_progress()
    assert progress.mark_adventure_completed("a1", Difficulty.EXPERT) == 50
    assert progress.total_points == 50
    assert progress.level == 1
    progress.mark_adventure_completed("a2", Difficulty.BEGINNER)
    assert progress.total_points == 60


def test_mark_adventure_completed_twice_awards_once():
    progress = _empty_progress()
    progress.mark_adventure_completed("a1", Difficulty.ADVANCED)
    assert progress.mark_adventure_completed("a1", Difficulty.ADVANCED) == 0
    assert progress.total_points == 30


def test_level_follows_points_across_boundary():
    progress = _empty_progress()
    for i in range(5):
        progress.mark_adventure_completed(f"a{i}", Difficulty.EXPERT)
    assert progress.total_points == 250
    assert progress.level == 3


def test_record_activity_awards_expected_points():
    progress = _empty_progress()
    outcome = progress.record_activity(_activity(), USER, now=NOW)
    assert outcome.points_awarded == 27
    assert progress.total_points == 27


def test_linked_activity_gets_bonus():
    progress = _empty_progress()
    outcome = progress.record_activity(_activity(related_adventure_id="a1"), USER, now=NOW)
    assert outcome.points_awarded == 42


def test_totals_equal_sums_over_activities():
    progress = _empty_progress()
    progress.record_activity(_activity(distance=3.5, calories=200), USER, now=NOW)
    progress.record_activity(_activity(activity_type=ActivityType.YOGA, duration=1800, calories=90), USER, now=NOW)
    assert progress.total_distance == 3.5
    assert progress.total_duration == 2400
    assert progress.total_calories == 290
    assert progress.activity_count == {ActivityType.HIKING: 1, ActivityType.YOGA: 1}


def test_streak_increments_on_consecutive_days_and_resets_after_gap():
    progress = _empty_progress()
    progress.record_activity(_activity(start=NOW), USER, now=NOW)
    assert progress.weekly_streak == 1
    progress.record_activity(_activity(start=NOW + datetime.timedelta(hours=3)), USER, now=NOW)
    assert progress.weekly_streak == 1
    progress.record_activity(_activity(start=NOW + datetime.timedelta(days=1, hours=3)), USER, now=NOW)
    assert progress.weekly_streak == 2
    progress.record_activity(_activity(start=NOW + datetime.timedelta(days=4)), USER, now=NOW)
    assert progress.weekly_streak == 1


def test_streak_counts_elapsed_days():
    progress = _empty_progress()
    late = datetime.datetime(2026, 3, 10, 23, 0)
    next_morning = datetime.datetime(2026, 3, 11, 6, 0)
    progress.record_activity(_activity(start=late), USER, now=late)
    progress.record_activity(_activity(start=next_morning), USER, now=next_morning)
    # less than 24 hours apart counts as the same day
    assert progress.weekly_streak == 1

    a_day_later = late + datetime.timedelta(hours=26)
    progress = _empty_progress()
    progress.record_activity(_activity(start=late), USER, now=late)
    progress.record_activity(_activity(start=a_day_later), USER, now=a_day_later)
    assert progress.weekly_streak == 2

    two_days_later = a_day_later + datetime.timedelta(hours=48)
    progress.record_activity(_activity(start=two_days_later), USER, now=two_days_later)
    assert progress.weekly_streak == 1


def test_milestone_achieved_once():
    progress = _empty_progress()
    progress.milestones = [
        Milestone(title="Ten", description="", type=MilestoneType.TOTAL_DISTANCE, threshold=10, reward=100),
    ]
    first = progress.record_activity(_activity(distance=12), USER, now=NOW)
    assert [m.title for m in first.milestones_achieved] == ["Ten"]
    assert progress.milestones[0].is_achieved
    assert progress.milestones[0].achieved_date == NOW
    assert first.points_awarded == 127

    second = progress.record_activity(_activity(distance=12), USER, now=NOW)
    assert second.milestones_achieved == []
    assert second.points_awarded == 27


def test_specific_activity_milestone_uses_activity_type():
    progress = _empty_progress()
    progress.milestones = [
        Milestone(
            title="Climber",
            description="",
            type=MilestoneType.SPECIFIC_ACTIVITY,
            threshold=2,
            reward=10,
            activity_type=ActivityType.CLIMBING,
        ),
    ]
    progress.record_activity(_activity(activity_type=ActivityType.HIKING), USER, now=NOW)
    progress.record_activity(_activity(activity_type=ActivityType.CLIMBING), USER, now=NOW)
    assert not progress.milestones[0].is_achieved
    progress.record_activity(_activity(activity_type=ActivityType.CLIMBING), USER, now=NOW)
    assert progress.milestones[0].is_achieved


def test_legacy_specific_activity_milestone_matches_title():
    milestone = Milestone.from_dict({
        "title": "Rock Climbing",
        "description": "",
        "type": "specificActivity",
        "threshold": 5,
        "reward": 50,
    })
    assert milestone.activity_type == ActivityType.CLIMBING


def test_challenge_moves_to_completed_exactly_once():
    progress = _empty_progress()
    challenge = Challenge.create("Ten km", "", ChallengeType.DISTANCE, 10, duration_days=7, reward=200, now=NOW)
    assert progress.join_challenge(challenge, USER)

    outcome = progress.record_activity(_activity(distance=6), USER, now=NOW)
    assert outcome.challenges_completed == []
    assert progress.active_challenges == [challenge]

    outcome = progress.record_activity(_activity(distance=6), USER, now=NOW)
    assert outcome.challenges_completed == [challenge]
    assert progress.active_challenges == []
    assert progress.completed_challenges == [challenge]
    assert outcome.points_awarded == 27 + 200

    outcome = progress.record_activity(_activity(distance=6), USER, now=NOW)
    assert outcome.challenges_completed == []
    assert len(progress.completed_challenges) == 1


def test_challenge_ignores_activity_outside_window():
    progress = _empty_progress()
    challenge = Challenge.create("Hours", "", ChallengeType.DURATION, 3600, duration_days=1, reward=10, now=NOW)
    progress.join_challenge(challenge, USER)
    progress.record_activity(_activity(start=NOW + datetime.timedelta(days=3), duration=7200), USER, now=NOW)
    assert challenge.progress_for(USER) == 0
    assert progress.active_challenges == [challenge]


def test_elevation_challenge_uses_route_gain():
    route = [
        LocationPoint(latitude=0, longitude=0, altitude=100, timestamp=NOW),
        LocationPoint(latitude=0, longitude=0.01, altitude=250, timestamp=NOW),
        LocationPoint(latitude=0, longitude=0.02, altitude=200, timestamp=NOW),
        LocationPoint(latitude=0, longitude=0.03, altitude=260, timestamp=NOW),
    ]
    assert elevation_gain(route) == 210
    progress = _empty_progress()
    challenge = Challenge.create("Climb", "", ChallengeType.ELEVATION, 1000, duration_days=7, reward=10, now=NOW)
    progress.join_challenge(challenge, USER)
    progress.record_activity(_activity(route=route), USER, now=NOW)
    assert challenge.progress_for(USER) == 210


def test_join_challenge_twice_is_noop():
    progress = _empty_progress()
    challenge = Challenge.create("Ten", "", ChallengeType.ACTIVITIES, 10, duration_days=7, reward=10, now=NOW)
    assert progress.join_challenge(challenge, USER)
    assert not progress.join_challenge(challenge, USER)
    assert challenge.participants == [USER]
    assert len(challenge.leaderboard) == 1
    assert challenge.leaderboard[0].rank == 1
    assert len(progress.active_challenges) == 1


def test_join_completed_challenge_is_noop():
    progress = _empty_progress()
    challenge = Challenge.create("One", "", ChallengeType.ACTIVITIES, 1, duration_days=7, reward=10, now=NOW)
    progress.join_challenge(challenge, USER)
    progress.record_activity(_activity(), USER, now=NOW)
    assert progress.completed_challenges == [challenge]

    fresh = Challenge.create("One", "", ChallengeType.ACTIVITIES, 1, duration_days=7, reward=10, now=NOW, id=challenge.id)
    assert not progress.join_challenge(fresh, USER)
    assert progress.active_challenges == []
    assert [c.id for c in progress.completed_challenges] == [challenge.id]
    assert fresh.participants == []


def test_invalid_activity_leaves_progress_untouched():
    progress = _empty_progress()
    progress.record_activity(_activity(distance=2), USER, now=NOW)
    snapshot = progress.to_dict()

    for bad in (
        _activity(duration=float("nan")),
        _activity(duration=float("inf")),
        _activity(duration=-60),
        _activity(distance=float("nan")),
        _activity(distance=-1),
        _activity(calories=-5),
    ):
        with pytest.raises(ValueError):
            progress.record_activity(bad, USER, now=NOW)

    assert progress.to_dict() == snapshot
    assert len(progress.activities) == 1
    assert progress.total_duration == 600


def test_goal_completion_awards_once():
    progress = _empty_progress()
    goal = Goal(type=GoalType.DISTANCE, target=5, period=GoalPeriod.DAILY, start_date=NOW)
    progress.add_goal(goal)
    assert not progress.update_goal_progress(goal.id, 3)
    assert progress.update_goal_progress(goal.id, 5)
    assert goal.is_completed
    assert not progress.update_goal_progress(goal.id, 8)
    assert progress.total_points == 50


def test_update_unknown_goal_is_ignored():
    progress = _empty_progress()
    assert not progress.update_goal_progress("missing", 10)
    assert progress.total_points == 0


def test_lesson_completion_is_idempotent():
    progress = _empty_progress()
    assert progress.mark_lesson_completed("l1") == 10
    assert progress.mark_lesson_completed("l1") == 0
    assert progress.total_points == 10


def test_course_completion_issues_single_certificate():
    progress = _empty_progress()
    course = _course()
    progress.mark_lesson_completed("l1")
    progress.mark_lesson_completed("l2")
    assert progress.check_course_completion(course, USER, now=NOW) is None
    assert progress.course_progress(course) == 2 / 3

    progress.mark_lesson_completed("l3")
    certificate = progress.check_course_completion(course, USER, now=NOW)
    assert certificate is not None
    assert certificate.grade == "A"
    assert certificate.course_id == "c1"
    assert not certificate.related_to_quiz
    assert progress.total_points == 30 + 100

    assert progress.check_course_completion(course, USER, now=NOW) is None
    assert progress.completed_courses_count == 1
    assert progress.total_points == 130


def test_empty_course_never_completes():
    progress = _empty_progress()
    assert progress.check_course_completion(Course(id="empty", title="Empty"), USER) is None


def test_submit_quiz_pass_issues_certificate_and_points():
    progress = _empty_progress()
    quiz = _quiz()
    certificate = progress.submit_quiz(quiz, 8, USER, now=NOW)
    assert certificate is not None
    assert certificate.related_to_quiz
    assert certificate.grade == "B"
    assert certificate.score == 8
    assert certificate.total_questions == 10
    assert progress.quiz_scores[quiz.id] == 8
    assert progress.total_points == 80
    assert quiz.completion_date == NOW
    assert quiz.is_passed


def test_submit_quiz_fail_still_awards_points():
    progress = _empty_progress()
    quiz = _quiz(difficulty=Difficulty.BEGINNER, required=6)
    assert progress.submit_quiz(quiz, 5, USER, now=NOW) is None
    assert progress.certificates == []
    assert progress.total_points == 25
    assert progress.completed_quizzes_count == 1


def test_quiz_points_round_half_up():
    assert quiz_points(100, Difficulty.EXPERT) == 125
    assert quiz_points(50, Difficulty.INTERMEDIATE) == 38
    assert quiz_points(0, Difficulty.ADVANCED) == 0


def test_calculate_grade_bands():
    assert calculate_grade(100) == "A"
    assert calculate_grade(90) == "A"
    assert calculate_grade(89.9) == "B"
    assert calculate_grade(70) == "C"
    assert calculate_grade(60) == "D"
    assert calculate_grade(59.9) == "F"


def test_delete_activity_recomputes_totals_and_keeps_points():
    progress = _empty_progress()
    first = _activity(distance=4, calories=150)
    second = _activity(activity_type=ActivityType.RUNNING, distance=6, calories=300)
    progress.record_activity(first, USER, now=NOW)
    progress.record_activity(second, USER, now=NOW)
    points = progress.total_points

    assert progress.delete_activity(second.id)
    assert progress.activities == [first]
    assert progress.total_distance == 4
    assert progress.total_calories == 150
    assert progress.activity_count == {ActivityType.HIKING: 1}
    assert progress.total_points == points
    assert not progress.delete_activity(second.id)


def test_toggle_favorite():
    progress = _empty_progress()
    assert progress.toggle_favorite("a1")
    assert "a1" in progress.favorite_adventures
    assert not progress.toggle_favorite("a1")
    assert "a1" not in progress.favorite_adventures


def test_recent_activities_returns_tail():
    progress = _empty_progress()
    for minutes in (10, 20, 30):
        progress.record_activity(_activity(duration=minutes * 60), USER, now=NOW)
    assert [a.duration for a in progress.recent_activities(2)] == [1200, 1800]
    assert progress.recent_activities(0) == []


def test_to_dict_from_dict_preserves_state():
    progress = UserProgress.create_default(NOW)
    challenge = Challenge.create("Ten km", "", ChallengeType.DISTANCE, 10, duration_days=7, reward=200, now=NOW)
    progress.join_challenge(challenge, USER)
    progress.record_activity(_activity(distance=3, related_course_id="c1"), USER, now=NOW)
    progress.mark_adventure_completed("a1", Difficulty.EXPERT)
    progress.toggle_favorite("a2")
    progress.mark_lesson_completed("l1")
    progress.submit_quiz(_quiz(), 9, USER, now=NOW)

    restored = UserProgress.from_dict(progress.to_dict())
    assert restored == progress


def test_from_dict_recomputes_level():
    restored = UserProgress.from_dict({"total_points": 340, "level": 1})
    assert restored.level == 4


def test_challenge_update_progress_sets_value_and_enrolls():
    challenge = Challenge.create("Hills", "", ChallengeType.ELEVATION, 500, duration_days=7, reward=10, now=NOW)
    challenge.update_progress(USER, 120)
    assert challenge.participants == [USER]
    assert challenge.progress_for(USER) == 120

    challenge.update_progress(USER, 300)
    assert challenge.progress_for(USER) == 300
    assert len(challenge.leaderboard) == 1
    assert challenge.is_active(NOW + datetime.timedelta(days=3))
    assert not challenge.is_active(NOW + datetime.timedelta(days=8))
