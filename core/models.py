"""
Plain records shared by the tracker, academy and challenge features.

Every record round-trips through ``to_dict`` / ``from_dict`` so the whole
progress aggregate can be stored as one JSON document.
"""
import datetime
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


def new_id() -> str:
    return str(uuid.uuid4())


def dt_to_str(value: datetime.datetime | None) -> str | None:
    if value is None:
        return None
    return value.isoformat()


def dt_from_str(value) -> datetime.datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime.datetime):
        return value
    return datetime.datetime.fromisoformat(str(value).replace("Z", "+00:00"))


# ==================== Enums ====================

class Difficulty(str, Enum):
    BEGINNER = "Beginner"
    INTERMEDIATE = "Intermediate"
    ADVANCED = "Advanced"
    EXPERT = "Expert"


class ActivityType(str, Enum):
    HIKING = "Hiking"
    CLIMBING = "Rock Climbing"
    BIKING = "Mountain Biking"
    SWIMMING = "Swimming"
    RUNNING = "Running"
    YOGA = "Yoga"

    @property
    def met_value(self) -> float:
        return _MET_VALUES[self]


_MET_VALUES = {
    ActivityType.HIKING: 6.0,
    ActivityType.CLIMBING: 8.0,
    ActivityType.BIKING: 7.5,
    ActivityType.SWIMMING: 7.0,
    ActivityType.RUNNING: 8.5,
    ActivityType.YOGA: 3.0,
}


class GoalType(str, Enum):
    DISTANCE = "distance"
    DURATION = "duration"
    CALORIES = "calories"
    FREQUENCY = "frequency"

    @property
    def unit(self) -> str:
        return {
            GoalType.DISTANCE: "km",
            GoalType.DURATION: "min",
            GoalType.CALORIES: "kcal",
            GoalType.FREQUENCY: "times",
        }[self]


class GoalPeriod(str, Enum):
    DAILY = "Daily"
    WEEKLY = "Weekly"
    MONTHLY = "Monthly"


class ChallengeType(str, Enum):
    DISTANCE = "distance"
    ELEVATION = "elevation"
    ACTIVITIES = "activities"
    DURATION = "duration"


class MilestoneType(str, Enum):
    TOTAL_DISTANCE = "totalDistance"
    TOTAL_DURATION = "totalDuration"
    TOTAL_CALORIES = "totalCalories"
    TOTAL_ACTIVITIES = "totalActivities"
    SPECIFIC_ACTIVITY = "specificActivity"


class AchievementType(str, Enum):
    ADVENTURE = "adventure"
    COURSE = "course"
    ACTIVITY = "activity"
    CHALLENGE = "challenge"
    MILESTONE = "milestone"


class LessonType(str, Enum):
    VIDEO = "video"
    INTERACTIVE = "interactive"
    TEXT = "text"
    QUIZ = "quiz"


# ==================== Sport activity ====================

@dataclass
class LocationPoint:
    latitude: float
    longitude: float
    altitude: float
    timestamp: datetime.datetime

    def to_dict(self) -> dict:
        return {
            "latitude": self.latitude,
            "longitude": self.longitude,
            "altitude": self.altitude,
            "timestamp": dt_to_str(self.timestamp),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "LocationPoint":
        return cls(
            latitude=float(data["latitude"]),
            longitude=float(data["longitude"]),
            altitude=float(data.get("altitude", 0.0)),
            timestamp=dt_from_str(data["timestamp"]),
        )


@dataclass
class HeartRateZone:
    zone: int
    duration: float

    def to_dict(self) -> dict:
        return {"zone": self.zone, "duration": self.duration}

    @classmethod
    def from_dict(cls, data: dict) -> "HeartRateZone":
        return cls(zone=int(data["zone"]), duration=float(data["duration"]))


@dataclass
class HeartRateData:
    average: int
    max: int
    min: int
    zones: list[HeartRateZone] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "average": self.average,
            "max": self.max,
            "min": self.min,
            "zones": [z.to_dict() for z in self.zones],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "HeartRateData":
        return cls(
            average=int(data["average"]),
            max=int(data["max"]),
            min=int(data["min"]),
            zones=[HeartRateZone.from_dict(z) for z in data.get("zones") or []],
        )


@dataclass
class SportActivity:
    type: ActivityType
    start_time: datetime.datetime
    duration: float
    calories: int
    difficulty: Difficulty = Difficulty.BEGINNER
    distance: float | None = None
    steps: int | None = None
    heart_rate: HeartRateData | None = None
    route: list[LocationPoint] | None = None
    notes: str | None = None
    related_adventure_id: str | None = None
    related_course_id: str | None = None
    id: str = field(default_factory=new_id)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type.value,
            "start_time": dt_to_str(self.start_time),
            "duration": self.duration,
            "distance": self.distance,
            "calories": self.calories,
            "steps": self.steps,
            "heart_rate": self.heart_rate.to_dict() if self.heart_rate else None,
            "route": [p.to_dict() for p in self.route] if self.route is not None else None,
            "notes": self.notes,
            "difficulty": self.difficulty.value,
            "related_adventure_id": self.related_adventure_id,
            "related_course_id": self.related_course_id,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SportActivity":
        route = data.get("route")
        heart_rate = data.get("heart_rate")
        return cls(
            id=data.get("id") or new_id(),
            type=ActivityType(data["type"]),
            start_time=dt_from_str(data["start_time"]),
            duration=float(data.get("duration", 0)),
            distance=float(data["distance"]) if data.get("distance") is not None else None,
            calories=int(data.get("calories", 0)),
            steps=data.get("steps"),
            heart_rate=HeartRateData.from_dict(heart_rate) if heart_rate else None,
            route=[LocationPoint.from_dict(p) for p in route] if route is not None else None,
            notes=data.get("notes"),
            difficulty=Difficulty(data.get("difficulty", Difficulty.BEGINNER.value)),
            related_adventure_id=data.get("related_adventure_id"),
            related_course_id=data.get("related_course_id"),
        )


@dataclass
class ActivityStats:
    total_distance: float = 0.0
    total_duration: float = 0.0
    total_calories: int = 0
    activity_count: dict[ActivityType, int] = field(default_factory=dict)

    @property
    def activities_total(self) -> int:
        return sum(self.activity_count.values())


# ==================== Goals ====================

@dataclass
class Goal:
    type: GoalType
    target: float
    period: GoalPeriod
    start_date: datetime.datetime
    progress: float = 0.0
    is_completed: bool = False
    id: str = field(default_factory=new_id)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type.value,
            "target": self.target,
            "period": self.period.value,
            "start_date": dt_to_str(self.start_date),
            "progress": self.progress,
            "is_completed": self.is_completed,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Goal":
        return cls(
            id=data.get("id") or new_id(),
            type=GoalType(data["type"]),
            target=float(data["target"]),
            period=GoalPeriod(data["period"]),
            start_date=dt_from_str(data["start_date"]),
            progress=float(data.get("progress", 0.0)),
            is_completed=bool(data.get("is_completed", False)),
        )


# ==================== Challenges ====================

@dataclass
class LeaderboardEntry:
    user_id: str
    progress: float
    rank: int
    id: str = field(default_factory=new_id)

    def to_dict(self) -> dict:
        return {"id": self.id, "user_id": self.user_id, "progress": self.progress, "rank": self.rank}

    @classmethod
    def from_dict(cls, data: dict) -> "LeaderboardEntry":
        return cls(
            id=data.get("id") or new_id(),
            user_id=str(data["user_id"]),
            progress=float(data.get("progress", 0.0)),
            rank=int(data.get("rank", 0)),
        )


@dataclass
class Challenge:
    title: str
    description: str
    type: ChallengeType
    target: float
    start_date: datetime.datetime
    end_date: datetime.datetime
    reward: int
    participants: list[str] = field(default_factory=list)
    leaderboard: list[LeaderboardEntry] = field(default_factory=list)
    id: str = field(default_factory=new_id)

    @classmethod
    def create(
        cls,
        title: str,
        description: str,
        type: ChallengeType,
        target: float,
        duration_days: int,
        reward: int,
        now: datetime.datetime | None = None,
        id: str | None = None,
    ) -> "Challenge":
        start = now or datetime.datetime.now()
        return cls(
            id=id or new_id(),
            title=title,
            description=description,
            type=type,
            target=target,
            start_date=start,
            end_date=start + datetime.timedelta(days=duration_days),
            reward=reward,
        )

    def entry_for(self, user_id: str) -> LeaderboardEntry | None:
        for entry in self.leaderboard:
            if entry.user_id == user_id:
                return entry
        return None

    def progress_for(self, user_id: str) -> float:
        entry = self.entry_for(user_id)
        return entry.progress if entry else 0.0

    def is_active(self, now: datetime.datetime | None = None) -> bool:
        now = now or datetime.datetime.now()
        return self.start_date <= now <= self.end_date

    def contains(self, moment: datetime.datetime) -> bool:
        return self.start_date <= moment <= self.end_date

    @property
    def is_completed(self) -> bool:
        return any(entry.progress >= self.target for entry in self.leaderboard)

    def update_progress(self, user_id: str, value: float):
        """Set a participant's absolute progress, enrolling them if unknown."""
        entry = self.entry_for(user_id)
        if entry:
            entry.progress = value
            return
        self.leaderboard.append(LeaderboardEntry(user_id=user_id, progress=value, rank=len(self.leaderboard) + 1))
        self.participants.append(user_id)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "type": self.type.value,
            "target": self.target,
            "start_date": dt_to_str(self.start_date),
            "end_date": dt_to_str(self.end_date),
            "reward": self.reward,
            "participants": list(self.participants),
            "leaderboard": [e.to_dict() for e in self.leaderboard],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Challenge":
        return cls(
            id=data.get("id") or new_id(),
            title=data["title"],
            description=data.get("description", ""),
            type=ChallengeType(data["type"]),
            target=float(data["target"]),
            start_date=dt_from_str(data["start_date"]),
            end_date=dt_from_str(data["end_date"]),
            reward=int(data.get("reward", 0)),
            participants=[str(p) for p in data.get("participants") or []],
            leaderboard=[LeaderboardEntry.from_dict(e) for e in data.get("leaderboard") or []],
        )


# ==================== Milestones ====================

@dataclass
class Milestone:
    title: str
    description: str
    type: MilestoneType
    threshold: float
    reward: int
    is_achieved: bool = False
    achieved_date: datetime.datetime | None = None
    activity_type: ActivityType | None = None
    id: str = field(default_factory=new_id)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "type": self.type.value,
            "threshold": self.threshold,
            "reward": self.reward,
            "is_achieved": self.is_achieved,
            "achieved_date": dt_to_str(self.achieved_date),
            "activity_type": self.activity_type.value if self.activity_type else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Milestone":
        milestone_type = MilestoneType(data["type"])
        raw_activity = data.get("activity_type")
        activity_type = ActivityType(raw_activity) if raw_activity else None
        if activity_type is None and milestone_type == MilestoneType.SPECIFIC_ACTIVITY:
            # Older documents bound the activity through the title only.
            activity_type = next((t for t in ActivityType if t.value == data.get("title")), None)
        return cls(
            id=data.get("id") or new_id(),
            title=data["title"],
            description=data.get("description", ""),
            type=milestone_type,
            threshold=float(data["threshold"]),
            reward=int(data.get("reward", 0)),
            is_achieved=bool(data.get("is_achieved", False)),
            achieved_date=dt_from_str(data.get("achieved_date")),
            activity_type=activity_type,
        )


# ==================== Certificates & achievements ====================

@dataclass
class Certificate:
    user_id: str
    issue_date: datetime.datetime
    grade: str
    course_id: str | None = None
    related_to_quiz: bool = False
    score: int | None = None
    total_questions: int | None = None
    course_title: str | None = None
    id: str = field(default_factory=new_id)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "course_id": self.course_id,
            "user_id": self.user_id,
            "issue_date": dt_to_str(self.issue_date),
            "grade": self.grade,
            "related_to_quiz": self.related_to_quiz,
            "score": self.score,
            "total_questions": self.total_questions,
            "course_title": self.course_title,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Certificate":
        return cls(
            id=data.get("id") or new_id(),
            course_id=data.get("course_id"),
            user_id=str(data.get("user_id", "")),
            issue_date=dt_from_str(data["issue_date"]),
            grade=data["grade"],
            related_to_quiz=bool(data.get("related_to_quiz", False)),
            score=data.get("score"),
            total_questions=data.get("total_questions"),
            course_title=data.get("course_title"),
        )


@dataclass
class Achievement:
    title: str
    description: str
    icon: str
    points: int
    type: AchievementType
    unlocked_date: datetime.datetime | None = None
    id: str = field(default_factory=new_id)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "icon": self.icon,
            "unlocked_date": dt_to_str(self.unlocked_date),
            "points": self.points,
            "type": self.type.value,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Achievement":
        return cls(
            id=data.get("id") or new_id(),
            title=data["title"],
            description=data.get("description", ""),
            icon=data.get("icon", ""),
            unlocked_date=dt_from_str(data.get("unlocked_date")),
            points=int(data.get("points", 0)),
            type=AchievementType(data["type"]),
        )


# ==================== Catalog content ====================

@dataclass
class Lesson:
    id: str
    title: str
    description: str = ""
    type: LessonType = LessonType.TEXT
    duration: int = 0
    content: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> "Lesson":
        return cls(
            id=str(data["id"]),
            title=data["title"],
            description=data.get("description", ""),
            type=LessonType(data.get("type", LessonType.TEXT.value)),
            duration=int(data.get("duration", 0)),
            content=data.get("content", ""),
        )


@dataclass
class CourseModule:
    id: str
    title: str
    description: str = ""
    lessons: list[Lesson] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> "CourseModule":
        return cls(
            id=str(data["id"]),
            title=data["title"],
            description=data.get("description", ""),
            lessons=[Lesson.from_dict(item) for item in data.get("lessons") or []],
        )


@dataclass
class Course:
    id: str
    title: str
    description: str = ""
    category: str = ""
    difficulty: Difficulty = Difficulty.BEGINNER
    duration: str = ""
    instructor: str = ""
    modules: list[CourseModule] = field(default_factory=list)

    @property
    def lessons(self) -> list[Lesson]:
        return [lesson for module in self.modules for lesson in module.lessons]

    def find_lesson(self, lesson_id: str) -> Lesson | None:
        return next((lesson for lesson in self.lessons if lesson.id == lesson_id), None)

    @classmethod
    def from_dict(cls, data: dict) -> "Course":
        return cls(
            id=str(data["id"]),
            title=data["title"],
            description=data.get("description", ""),
            category=data.get("category", ""),
            difficulty=Difficulty(data.get("difficulty", Difficulty.BEGINNER.value)),
            duration=data.get("duration", ""),
            instructor=data.get("instructor", ""),
            modules=[CourseModule.from_dict(item) for item in data.get("modules") or []],
        )


@dataclass
class Adventure:
    id: str
    title: str
    category: str
    difficulty: Difficulty
    description: str = ""
    duration: str = ""
    distance: float | None = None
    location: str = ""
    latitude: float | None = None
    longitude: float | None = None
    tips: list[str] = field(default_factory=list)
    equipment: list[str] = field(default_factory=list)
    best_season: str = ""
    rating: float = 0.0
    reviews: int = 0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Adventure":
        return cls(
            id=str(data["id"]),
            title=data["title"],
            category=data.get("category", ""),
            difficulty=Difficulty(data.get("difficulty", Difficulty.BEGINNER.value)),
            description=data.get("description", ""),
            duration=data.get("duration", ""),
            distance=data.get("distance"),
            location=data.get("location", ""),
            latitude=data.get("latitude"),
            longitude=data.get("longitude"),
            tips=list(data.get("tips") or []),
            equipment=list(data.get("equipment") or []),
            best_season=data.get("best_season", ""),
            rating=float(data.get("rating", 0.0)),
            reviews=int(data.get("reviews", 0)),
        )
