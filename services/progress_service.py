import datetime
import logging
from typing import Callable

from core.models import Adventure, Certificate, Challenge, Course, Goal, SportActivity
from core.progress import ActivityOutcome, UserProgress
from core.quiz_models import Quiz
from database.repositories.progress_repository import load_progress, save_progress
from services.tracker_service import TrackerService
from utils.ops_logging import log_structured


class ProgressService:
    """
    Owns the progress aggregates of the running process.

    Handlers receive one instance through the dispatcher and never touch
    aggregate fields directly: every change goes through a method here,
    which applies the aggregate operation and persists the whole document.
    """

    def __init__(
        self,
        loader: Callable[[str], UserProgress] = load_progress,
        saver: Callable[[str, UserProgress], bool] = save_progress,
    ):
        self._load = loader
        self._save = saver
        self._cache: dict[str, UserProgress] = {}

    def get(self, user_id: str) -> UserProgress:
        user_id = str(user_id)
        progress = self._cache.get(user_id)
        if progress is None:
            progress = self._load(user_id)
            self._cache[user_id] = progress
        return progress

    def forget(self, user_id: str):
        self._cache.pop(str(user_id), None)

    def _commit(self, user_id: str, progress: UserProgress):
        # Best effort: the in-memory state stays authoritative when a write fails.
        if not self._save(str(user_id), progress):
            logging.warning("Progress for %s kept in memory only (save failed)", user_id)

    # ---------------------------------------------------------------------------
    # Tracker
    # ---------------------------------------------------------------------------

    def record_activity(self, user_id: str, activity: SportActivity, now: datetime.datetime | None = None) -> ActivityOutcome:
        progress = self.get(user_id)
        outcome = progress.record_activity(activity, str(user_id), now=now)
        self._commit(user_id, progress)
        log_structured(
            "activity_recorded",
            user_id=user_id,
            type=activity.type.value,
            points=outcome.points_awarded,
            streak=outcome.streak,
            milestones=[m.title for m in outcome.milestones_achieved],
            challenges=[c.title for c in outcome.challenges_completed],
        )
        return outcome

    def delete_activity(self, user_id: str, activity_id: str) -> bool:
        progress = self.get(user_id)
        removed = progress.delete_activity(activity_id)
        if removed:
            self._commit(user_id, progress)
        return removed

    def add_goal(self, user_id: str, goal: Goal):
        progress = self.get(user_id)
        progress.add_goal(goal)
        self._commit(user_id, progress)

    def update_goal_progress(self, user_id: str, goal_id: str, value: float) -> bool:
        progress = self.get(user_id)
        completed = progress.update_goal_progress(goal_id, value)
        self._commit(user_id, progress)
        if completed:
            log_structured("goal_completed", user_id=user_id, goal_id=goal_id)
        return completed

    def refresh_goals(self, user_id: str, now: datetime.datetime | None = None) -> list[Goal]:
        """Recomputes every goal from the activities of its current period."""
        progress = self.get(user_id)
        now = now or datetime.datetime.now()
        completed = []
        for goal in progress.goals:
            stats = TrackerService.get_stats(progress, goal.period, now)
            if progress.update_goal_progress(goal.id, TrackerService.goal_progress(goal, stats)):
                completed.append(goal)
        self._commit(user_id, progress)
        for goal in completed:
            log_structured("goal_completed", user_id=user_id, goal_id=goal.id)
        return completed

    def join_challenge(self, user_id: str, challenge: Challenge) -> bool:
        progress = self.get(user_id)
        joined = progress.join_challenge(challenge, str(user_id))
        if joined:
            self._commit(user_id, progress)
            log_structured("challenge_joined", user_id=user_id, challenge_id=challenge.id)
        return joined

    # ---------------------------------------------------------------------------
    # Adventures & academy
    # ---------------------------------------------------------------------------

    def toggle_favorite(self, user_id: str, adventure_id: str) -> bool:
        progress = self.get(user_id)
        is_favorite = progress.toggle_favorite(adventure_id)
        self._commit(user_id, progress)
        return is_favorite

    def mark_adventure_completed(self, user_id: str, adventure: Adventure) -> int:
        progress = self.get(user_id)
        points = progress.mark_adventure_completed(adventure.id, adventure.difficulty)
        self._commit(user_id, progress)
        if points:
            log_structured("adventure_completed", user_id=user_id, adventure_id=adventure.id, points=points)
        return points

    def mark_lesson_completed(self, user_id: str, lesson_id: str, course: Course | None = None) -> tuple[int, Certificate | None]:
        """Completes a lesson and, when a course is given, checks whether it finished the course."""
        progress = self.get(user_id)
        points = progress.mark_lesson_completed(lesson_id)
        certificate = None
        if course is not None:
            certificate = progress.check_course_completion(course, str(user_id))
        self._commit(user_id, progress)
        if certificate:
            log_structured("course_completed", user_id=user_id, course_id=course.id, grade=certificate.grade)
        return points, certificate

    def check_course_completion(self, user_id: str, course: Course) -> Certificate | None:
        progress = self.get(user_id)
        certificate = progress.check_course_completion(course, str(user_id))
        if certificate:
            self._commit(user_id, progress)
            log_structured("course_completed", user_id=user_id, course_id=course.id, grade=certificate.grade)
        return certificate

    def submit_quiz(self, user_id: str, quiz: Quiz, score: int, course_title: str | None = None) -> Certificate | None:
        progress = self.get(user_id)
        points_before = progress.total_points
        certificate = progress.submit_quiz(quiz, score, str(user_id), course_title=course_title)
        self._commit(user_id, progress)
        log_structured(
            "quiz_submitted",
            user_id=user_id,
            quiz_id=quiz.id,
            category=quiz.category.bank_key,
            score=score,
            total=len(quiz.questions),
            passed=certificate is not None,
            points=progress.total_points - points_before,
        )
        return certificate
