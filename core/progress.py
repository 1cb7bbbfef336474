"""
User progress aggregate.

One ``UserProgress`` instance holds everything a user has earned: completed
adventures and lessons, certificates, quiz scores, tracked activities,
goals, challenges, milestones and the points/level/streak counters.
All changes go through the methods below so derived fields stay consistent:

  - level is always total_points // 100 + 1
  - cumulative totals always equal the sums over ``activities``
  - milestones only ever flip from unachieved to achieved
  - a joined challenge lives in exactly one of active/completed
"""
import datetime
import math
from dataclasses import dataclass, field

from core.models import (
    Achievement,
    ActivityType,
    Certificate,
    Challenge,
    ChallengeType,
    Course,
    Difficulty,
    Goal,
    GoalPeriod,
    GoalType,
    LeaderboardEntry,
    LocationPoint,
    Milestone,
    MilestoneType,
    SportActivity,
    dt_from_str,
    dt_to_str,
)
from core.quiz_models import Quiz

POINTS_PER_LEVEL = 100

ADVENTURE_POINTS = {
    Difficulty.BEGINNER: 10,
    Difficulty.INTERMEDIATE: 20,
    Difficulty.ADVANCED: 30,
    Difficulty.EXPERT: 50,
}

ACTIVITY_DIFFICULTY_BONUS = {
    Difficulty.BEGINNER: 5,
    Difficulty.INTERMEDIATE: 10,
    Difficulty.ADVANCED: 15,
    Difficulty.EXPERT: 20,
}

QUIZ_DIFFICULTY_MULTIPLIER = {
    Difficulty.BEGINNER: 1.0,
    Difficulty.INTERMEDIATE: 1.5,
    Difficulty.ADVANCED: 2.0,
    Difficulty.EXPERT: 2.5,
}

ACTIVITY_BASE_POINTS = 10
ACTIVITY_SECONDS_PER_POINT = 300
LINKED_ACTIVITY_BONUS = 15
LESSON_POINTS = 10
COURSE_POINTS = 100
GOAL_POINTS = 50
QUIZ_BASE_POINTS = 50


def level_for_points(points: int) -> int:
    return points // POINTS_PER_LEVEL + 1


def calculate_grade(percentage: float) -> str:
    if 90 <= percentage <= 100:
        return "A"
    if 80 <= percentage < 90:
        return "B"
    if 70 <= percentage < 80:
        return "C"
    if 60 <= percentage < 70:
        return "D"
    return "F"


def elevation_gain(route: list[LocationPoint] | None) -> float:
    if not route or len(route) < 2:
        return 0.0
    gain = 0.0
    for previous, current in zip(route, route[1:]):
        delta = current.altitude - previous.altitude
        if delta > 0:
            gain += delta
    return gain


def activity_points(activity: SportActivity) -> int:
    points = ACTIVITY_BASE_POINTS
    points += int(activity.duration // ACTIVITY_SECONDS_PER_POINT)
    points += ACTIVITY_DIFFICULTY_BONUS[activity.difficulty]
    if activity.related_adventure_id is not None or activity.related_course_id is not None:
        points += LINKED_ACTIVITY_BONUS
    return points


def validate_activity(activity: SportActivity):
    """Raises ValueError for an activity whose numbers would corrupt the totals."""
    if not math.isfinite(activity.duration) or activity.duration < 0:
        raise ValueError(f"Invalid activity duration: {activity.duration}")
    if activity.distance is not None and (not math.isfinite(activity.distance) or activity.distance < 0):
        raise ValueError(f"Invalid activity distance: {activity.distance}")
    if activity.calories < 0:
        raise ValueError(f"Invalid activity calories: {activity.calories}")


def quiz_points(percentage: float, difficulty: Difficulty) -> int:
    raw = QUIZ_BASE_POINTS * QUIZ_DIFFICULTY_MULTIPLIER[difficulty] * (percentage / 100)
    return int(math.floor(raw + 0.5))


def challenge_delta(challenge_type: ChallengeType, activity: SportActivity) -> float:
    if challenge_type == ChallengeType.DISTANCE:
        return activity.distance or 0.0
    if challenge_type == ChallengeType.ELEVATION:
        return elevation_gain(activity.route)
    if challenge_type == ChallengeType.ACTIVITIES:
        return 1.0
    return float(activity.duration)


def default_goals(now: datetime.datetime) -> list[Goal]:
    return [
        Goal(type=GoalType.DISTANCE, target=5.0, period=GoalPeriod.DAILY, start_date=now),
        Goal(type=GoalType.DURATION, target=30, period=GoalPeriod.DAILY, start_date=now),
        Goal(type=GoalType.CALORIES, target=300, period=GoalPeriod.DAILY, start_date=now),
    ]


def default_milestones() -> list[Milestone]:
    return [
        Milestone(
            title="Aspiring Traveler",
            description="Walk 10 km",
            type=MilestoneType.TOTAL_DISTANCE,
            threshold=10,
            reward=100,
        ),
        Milestone(
            title="Active Explorer",
            description="Spend 5 hours in activities",
            type=MilestoneType.TOTAL_DURATION,
            threshold=18000,
            reward=150,
        ),
        Milestone(
            title="Master of Rock Climbing",
            description="Complete 10 climbing activities",
            type=MilestoneType.SPECIFIC_ACTIVITY,
            threshold=10,
            reward=200,
            activity_type=ActivityType.CLIMBING,
        ),
        Milestone(
            title="Regular",
            description="Log 25 activities",
            type=MilestoneType.TOTAL_ACTIVITIES,
            threshold=25,
            reward=150,
        ),
        Milestone(
            title="Furnace",
            description="Burn 5000 kcal",
            type=MilestoneType.TOTAL_CALORIES,
            threshold=5000,
            reward=120,
        ),
    ]


@dataclass
class ActivityOutcome:
    """What a single ``record_activity`` call earned."""
    points_awarded: int = 0
    milestones_achieved: list[Milestone] = field(default_factory=list)
    challenges_completed: list[Challenge] = field(default_factory=list)
    streak: int = 0


@dataclass
class UserProgress:
    completed_adventures: set[str] = field(default_factory=set)
    favorite_adventures: set[str] = field(default_factory=set)
    completed_lessons: set[str] = field(default_factory=set)
    certificates: list[Certificate] = field(default_factory=list)
    quiz_scores: dict[str, int] = field(default_factory=dict)
    activities: list[SportActivity] = field(default_factory=list)
    goals: list[Goal] = field(default_factory=list)
    active_challenges: list[Challenge] = field(default_factory=list)
    completed_challenges: list[Challenge] = field(default_factory=list)
    milestones: list[Milestone] = field(default_factory=list)
    total_points: int = 0
    level: int = 1
    achievements: list[Achievement] = field(default_factory=list)
    weekly_streak: int = 0
    last_activity_date: datetime.datetime | None = None
    total_distance: float = 0.0
    total_duration: float = 0.0
    total_calories: int = 0
    activity_count: dict[ActivityType, int] = field(default_factory=dict)

    @classmethod
    def create_default(cls, now: datetime.datetime | None = None) -> "UserProgress":
        now = now or datetime.datetime.now()
        return cls(goals=default_goals(now), milestones=default_milestones())

    # ---------------------------------------------------------------------------
    # Points
    # ---------------------------------------------------------------------------

    def _award(self, points: int):
        self.total_points += points
        self._update_level()

    def _update_level(self):
        self.level = level_for_points(self.total_points)

    # ---------------------------------------------------------------------------
    # Tracker
    # ---------------------------------------------------------------------------

    def record_activity(
        self,
        activity: SportActivity,
        user_id: str,
        now: datetime.datetime | None = None,
    ) -> ActivityOutcome:
        validate_activity(activity)
        now = now or datetime.datetime.now()
        points_before = self.total_points
        earned = activity_points(activity)
        self.activities.append(activity)

        if activity.distance is not None:
            self.total_distance += activity.distance
        self.total_duration += activity.duration
        self.total_calories += activity.calories
        self.activity_count[activity.type] = self.activity_count.get(activity.type, 0) + 1

        self._update_streak(activity.start_time)
        achieved = self._check_milestones(now)
        completed = self._update_challenges(activity, user_id)
        self.total_points += earned
        self._update_level()

        return ActivityOutcome(
            points_awarded=self.total_points - points_before,
            milestones_achieved=achieved,
            challenges_completed=completed,
            streak=self.weekly_streak,
        )

    def _update_streak(self, activity_date: datetime.datetime):
        if self.last_activity_date is None:
            self.weekly_streak = 1
        else:
            gap = (activity_date - self.last_activity_date).days
            if gap == 1:
                self.weekly_streak += 1
            elif gap > 1:
                self.weekly_streak = 1
        self.last_activity_date = activity_date

    def _milestone_metric(self, milestone: Milestone) -> float | None:
        if milestone.type == MilestoneType.TOTAL_DISTANCE:
            return self.total_distance
        if milestone.type == MilestoneType.TOTAL_DURATION:
            return self.total_duration
        if milestone.type == MilestoneType.TOTAL_CALORIES:
            return float(self.total_calories)
        if milestone.type == MilestoneType.TOTAL_ACTIVITIES:
            return float(len(self.activities))
        if milestone.activity_type is None:
            return None
        return float(self.activity_count.get(milestone.activity_type, 0))

    def _check_milestones(self, now: datetime.datetime) -> list[Milestone]:
        achieved = []
        for milestone in self.milestones:
            if milestone.is_achieved:
                continue
            metric = self._milestone_metric(milestone)
            if metric is not None and metric >= milestone.threshold:
                milestone.is_achieved = True
                milestone.achieved_date = now
                self.total_points += milestone.reward
                achieved.append(milestone)
        return achieved

    def _update_challenges(self, activity: SportActivity, user_id: str) -> list[Challenge]:
        still_active = []
        completed = []
        for challenge in self.active_challenges:
            entry = challenge.entry_for(user_id)
            if entry is None or not challenge.contains(activity.start_time):
                still_active.append(challenge)
                continue
            challenge.update_progress(user_id, entry.progress + challenge_delta(challenge.type, activity))
            if entry.progress >= challenge.target:
                self.total_points += challenge.reward
                self.completed_challenges.append(challenge)
                completed.append(challenge)
            else:
                still_active.append(challenge)
        self.active_challenges = still_active
        return completed

    def delete_activity(self, activity_id: str) -> bool:
        """
        Removes an activity and rebuilds the cumulative stats from what is left.
        Points, streak, milestones and challenge progress are kept.
        """
        remaining = [a for a in self.activities if a.id != activity_id]
        if len(remaining) == len(self.activities):
            return False
        self.activities = remaining
        self._recompute_totals()
        return True

    def _recompute_totals(self):
        self.total_distance = sum(a.distance for a in self.activities if a.distance is not None)
        self.total_duration = sum(a.duration for a in self.activities)
        self.total_calories = sum(a.calories for a in self.activities)
        counts: dict[ActivityType, int] = {}
        for activity in self.activities:
            counts[activity.type] = counts.get(activity.type, 0) + 1
        self.activity_count = counts

    def recent_activities(self, limit: int = 5) -> list[SportActivity]:
        if limit <= 0:
            return []
        return self.activities[-limit:]

    # ---------------------------------------------------------------------------
    # Goals
    # ---------------------------------------------------------------------------

    def add_goal(self, goal: Goal):
        self.goals.append(goal)

    def find_goal(self, goal_id: str) -> Goal | None:
        return next((g for g in self.goals if g.id == goal_id), None)

    def update_goal_progress(self, goal_id: str, progress: float) -> bool:
        """Returns True when this update completed the goal."""
        goal = self.find_goal(goal_id)
        if goal is None:
            return False
        goal.progress = progress
        if progress >= goal.target and not goal.is_completed:
            goal.is_completed = True
            self._award(GOAL_POINTS)
            return True
        return False

    # ---------------------------------------------------------------------------
    # Challenges
    # ---------------------------------------------------------------------------

    def is_challenge_joined(self, challenge_id: str) -> bool:
        return any(c.id == challenge_id for c in self.active_challenges + self.completed_challenges)

    def join_challenge(self, challenge: Challenge, user_id: str) -> bool:
        if self.is_challenge_joined(challenge.id):
            return False
        challenge.participants.append(user_id)
        challenge.leaderboard.append(
            LeaderboardEntry(user_id=user_id, progress=0.0, rank=len(challenge.participants))
        )
        self.active_challenges.append(challenge)
        return True

    # ---------------------------------------------------------------------------
    # Adventures
    # ---------------------------------------------------------------------------

    def toggle_favorite(self, adventure_id: str) -> bool:
        """Returns True when the adventure is a favorite afterwards."""
        if adventure_id in self.favorite_adventures:
            self.favorite_adventures.discard(adventure_id)
            return False
        self.favorite_adventures.add(adventure_id)
        return True

    def mark_adventure_completed(self, adventure_id: str, difficulty: Difficulty) -> int:
        if adventure_id in self.completed_adventures:
            return 0
        self.completed_adventures.add(adventure_id)
        points = ADVENTURE_POINTS[difficulty]
        self._award(points)
        return points

    # ---------------------------------------------------------------------------
    # Academy
    # ---------------------------------------------------------------------------

    def is_lesson_completed(self, lesson_id: str) -> bool:
        return lesson_id in self.completed_lessons

    def mark_lesson_completed(self, lesson_id: str) -> int:
        if lesson_id in self.completed_lessons:
            return 0
        self.completed_lessons.add(lesson_id)
        self._award(LESSON_POINTS)
        return LESSON_POINTS

    def course_progress(self, course: Course) -> float:
        lessons = course.lessons
        if not lessons:
            return 0.0
        done = sum(1 for lesson in lessons if lesson.id in self.completed_lessons)
        return done / len(lessons)

    def has_course_certificate(self, course_id: str) -> bool:
        return any(c.course_id == course_id and not c.related_to_quiz for c in self.certificates)

    def check_course_completion(
        self,
        course: Course,
        user_id: str,
        now: datetime.datetime | None = None,
    ) -> Certificate | None:
        lessons = course.lessons
        if not lessons or self.has_course_certificate(course.id):
            return None
        if not all(lesson.id in self.completed_lessons for lesson in lessons):
            return None
        certificate = Certificate(
            user_id=user_id,
            issue_date=now or datetime.datetime.now(),
            grade=calculate_grade(self.course_progress(course) * 100),
            course_id=course.id,
            course_title=course.title,
        )
        self.certificates.append(certificate)
        self._award(COURSE_POINTS)
        return certificate

    def submit_quiz(
        self,
        quiz: Quiz,
        score: int,
        user_id: str,
        course_title: str | None = None,
        now: datetime.datetime | None = None,
    ) -> Certificate | None:
        now = now or datetime.datetime.now()
        self.quiz_scores[quiz.id] = score
        quiz.user_score = score
        quiz.completion_date = now

        total = len(quiz.questions)
        percentage = score / total * 100 if total else 0.0
        certificate = None
        if score >= quiz.required_score:
            certificate = Certificate(
                user_id=user_id,
                issue_date=now,
                grade=calculate_grade(percentage),
                course_id=quiz.related_course_id,
                related_to_quiz=True,
                score=score,
                total_questions=total,
                course_title=course_title or quiz.title,
            )
            self.certificates.append(certificate)

        self._award(quiz_points(percentage, quiz.difficulty))
        return certificate

    @property
    def completed_courses_count(self) -> int:
        return sum(1 for c in self.certificates if not c.related_to_quiz)

    @property
    def completed_quizzes_count(self) -> int:
        return len(self.quiz_scores)

    # ---------------------------------------------------------------------------
    # Serialization
    # ---------------------------------------------------------------------------

    def to_dict(self) -> dict:
        return {
            "completed_adventures": sorted(self.completed_adventures),
            "favorite_adventures": sorted(self.favorite_adventures),
            "completed_lessons": sorted(self.completed_lessons),
            "certificates": [c.to_dict() for c in self.certificates],
            "quiz_scores": dict(self.quiz_scores),
            "activities": [a.to_dict() for a in self.activities],
            "goals": [g.to_dict() for g in self.goals],
            "active_challenges": [c.to_dict() for c in self.active_challenges],
            "completed_challenges": [c.to_dict() for c in self.completed_challenges],
            "milestones": [m.to_dict() for m in self.milestones],
            "total_points": self.total_points,
            "level": self.level,
            "achievements": [a.to_dict() for a in self.achievements],
            "weekly_streak": self.weekly_streak,
            "last_activity_date": dt_to_str(self.last_activity_date),
            "total_distance": self.total_distance,
            "total_duration": self.total_duration,
            "total_calories": self.total_calories,
            "activity_count": {t.value: n for t, n in self.activity_count.items()},
        }

    @classmethod
    def from_dict(cls, data: dict) -> "UserProgress":
        progress = cls(
            completed_adventures=set(data.get("completed_adventures") or []),
            favorite_adventures=set(data.get("favorite_adventures") or []),
            completed_lessons=set(data.get("completed_lessons") or []),
            certificates=[Certificate.from_dict(c) for c in data.get("certificates") or []],
            quiz_scores={str(k): int(v) for k, v in (data.get("quiz_scores") or {}).items()},
            activities=[SportActivity.from_dict(a) for a in data.get("activities") or []],
            goals=[Goal.from_dict(g) for g in data.get("goals") or []],
            active_challenges=[Challenge.from_dict(c) for c in data.get("active_challenges") or []],
            completed_challenges=[Challenge.from_dict(c) for c in data.get("completed_challenges") or []],
            milestones=[Milestone.from_dict(m) for m in data.get("milestones") or []],
            total_points=int(data.get("total_points", 0)),
            achievements=[Achievement.from_dict(a) for a in data.get("achievements") or []],
            weekly_streak=int(data.get("weekly_streak", 0)),
            last_activity_date=dt_from_str(data.get("last_activity_date")),
            total_distance=float(data.get("total_distance", 0.0)),
            total_duration=float(data.get("total_duration", 0.0)),
            total_calories=int(data.get("total_calories", 0)),
            activity_count={ActivityType(k): int(v) for k, v in (data.get("activity_count") or {}).items()},
        )
        progress._update_level()
        return progress
