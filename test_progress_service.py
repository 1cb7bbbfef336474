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
    SportActivity,
)
from core.progress import UserProgress
from core.quiz_models import Question, Quiz, QuizCategory
from services.progress_service import ProgressService

NOW = datetime.datetime(2026, 3, 11, 9, 0)


class FakeStore:
    def __init__(self, fail_saves=False):
        self.saved = {}
        self.loads = 0
        self.fail_saves = fail_saves

    def load(self, user_id):
        self.loads += 1
        return UserProgress.create_default(NOW)

    def save(self, user_id, progress):
        if self.fail_saves:
            return False
        self.saved[user_id] = progress.to_dict()
        return True


def _service(store):
    return ProgressService(loader=store.load, saver=store.save)


def test_get_caches_per_user():
    store = FakeStore()
    service = _service(store)
    assert service.get("1") is service.get("1")
    service.get("2")
    assert store.loads == 2
    service.forget("1")
    service.get("1")
    assert store.loads == 3


def test_record_activity_persists_whole_document():
    store = FakeStore()
    service = _service(store)
    activity = SportActivity(type=ActivityType.HIKING, start_time=NOW, duration=600, calories=50, difficulty=Difficulty.ADVANCED)
    outcome = service.record_activity("1", activity, now=NOW)
    assert outcome.points_awarded == 27
    assert store.saved["1"]["total_points"] == 27
    assert len(store.saved["1"]["activities"]) == 1


def test_failed_save_keeps_memory_state():
    store = FakeStore(fail_saves=True)
    service = _service(store)
    is_favorite = service.toggle_favorite("1", "adv-1")
    assert is_favorite is True
    assert "adv-1" in service.get("1").favorite_adventures
    assert store.saved == {}


def test_refresh_goals_completes_daily_distance_goal():
    store = FakeStore()
    service = _service(store)
    activity = SportActivity(type=ActivityType.RUNNING, start_time=NOW, duration=1200, calories=100, distance=6.0)
    service.record_activity("1", activity, now=NOW)

    completed = service.refresh_goals("1", now=NOW)
    assert [g.target for g in completed] == [5.0]
    assert service.refresh_goals("1", now=NOW) == []
    progress = service.get("1")
    distance_goal = next(g for g in progress.goals if g.is_completed)
    assert distance_goal.progress == 6.0


def test_lesson_completion_finishes_course():
    store = FakeStore()
    service = _service(store)
    course = Course(id="c1", title="Knots", modules=[CourseModule(id="m", title="M", lessons=[Lesson(id="l1", title="L1"), Lesson(id="l2", title="L2")])])
    assert service.mark_lesson_completed("1", "l1", course) == (10, None)
    points, certificate = service.mark_lesson_completed("1", "l2", course)
    assert points == 10
    assert certificate is not None and certificate.course_id == "c1"
    assert service.get("1").total_points == 120
    assert service.check_course_completion("1", course) is None


def test_join_challenge_and_submit_quiz():
    store = FakeStore()
    service = _service(store)
    challenge = Challenge.create("Ten", "", ChallengeType.ACTIVITIES, 10, duration_days=7, reward=10, now=NOW)
    assert service.join_challenge("1", challenge)
    assert not service.join_challenge("1", challenge)

    quiz = Quiz(
        title="Safety Basics - Beginner",
        description="",
        category=QuizCategory.SAFETY_BASICS,
        difficulty=Difficulty.BEGINNER,
        questions=[Question(text=f"q{i}", options=["a", "b"], correct_answer=0) for i in range(5)],
        required_score=3,
    )
    certificate = service.submit_quiz("1", quiz, 5)
    assert certificate is not None
    assert certificate.grade == "A"
    assert store.saved["1"]["quiz_scores"] == {quiz.id: 5}


def test_add_goal_and_update_progress_award_once():
    store = FakeStore()
    service = _service(store)
    goal = Goal(type=GoalType.FREQUENCY, target=3, period=GoalPeriod.WEEKLY, start_date=NOW)
    service.add_goal("1", goal)
    assert store.saved["1"]["goals"][-1]["id"] == goal.id

    assert not service.update_goal_progress("1", goal.id, 2)
    assert service.update_goal_progress("1", goal.id, 3)
    assert not service.update_goal_progress("1", goal.id, 4)
    assert service.get("1").total_points == 50
    assert store.saved["1"]["total_points"] == 50
    assert not service.update_goal_progress("1", "missing", 10)


def test_rejected_activity_is_not_saved():
    store = FakeStore()
    service = _service(store)
    activity = SportActivity(type=ActivityType.RUNNING, start_time=NOW, duration=float("nan"), calories=0)
    with pytest.raises(ValueError):
        service.record_activity("1", activity, now=NOW)
    assert store.saved == {}
    assert service.get("1").activities == []
