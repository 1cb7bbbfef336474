import datetime
from dataclasses import dataclass, field
from enum import Enum

from core.models import Difficulty, dt_from_str, dt_to_str, new_id


class QuizCategory(str, Enum):
    SAFETY_BASICS = "Safety Basics"
    EQUIPMENT = "Equipment Knowledge"
    NAVIGATION = "Navigation Skills"
    SURVIVAL = "Survival Skills"
    FIRST_AID = "First Aid"
    ENVIRONMENTAL_AWARENESS = "Environmental Awareness"
    WEATHER_KNOWLEDGE = "Weather Knowledge"
    TECHNIQUE_BASICS = "Technique Basics"

    @property
    def bank_key(self) -> str:
        """Key of this category in the quiz bank document."""
        return _BANK_KEYS[self]

    @property
    def detailed_description(self) -> str:
        return _DESCRIPTIONS[self]

    @classmethod
    def from_bank_key(cls, key: str) -> "QuizCategory | None":
        for category, bank_key in _BANK_KEYS.items():
            if bank_key == key:
                return category
        return None


_BANK_KEYS = {
    QuizCategory.SAFETY_BASICS: "safetyBasics",
    QuizCategory.EQUIPMENT: "equipmentKnowledge",
    QuizCategory.NAVIGATION: "navigationSkills",
    QuizCategory.SURVIVAL: "survivalSkills",
    QuizCategory.FIRST_AID: "firstAid",
    QuizCategory.ENVIRONMENTAL_AWARENESS: "environmentalAwareness",
    QuizCategory.WEATHER_KNOWLEDGE: "weatherKnowledge",
    QuizCategory.TECHNIQUE_BASICS: "techniqueBasics",
}

_DESCRIPTIONS = {
    QuizCategory.SAFETY_BASICS: "Essential safety protocols and risk management",
    QuizCategory.EQUIPMENT: "Gear selection, maintenance and proper usage",
    QuizCategory.NAVIGATION: "Map reading, compass use and route finding",
    QuizCategory.SURVIVAL: "Wilderness survival techniques and emergency shelter",
    QuizCategory.FIRST_AID: "Emergency medical response and injury treatment",
    QuizCategory.ENVIRONMENTAL_AWARENESS: "Ecosystem understanding and leave no trace principles",
    QuizCategory.WEATHER_KNOWLEDGE: "Weather patterns recognition and storm safety",
    QuizCategory.TECHNIQUE_BASICS: "Proper movement techniques and physical preparedness",
}


class QuizStatus(str, Enum):
    NOT_STARTED = "notStarted"
    IN_PROGRESS = "inProgress"
    PASSED = "passed"
    FAILED = "failed"


@dataclass
class Question:
    text: str
    options: list[str]
    correct_answer: int
    explanation: str = ""
    user_answer: int | None = None
    id: str = field(default_factory=new_id)

    @property
    def is_correct(self) -> bool | None:
        if self.user_answer is None:
            return None
        return self.user_answer == self.correct_answer

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "text": self.text,
            "options": list(self.options),
            "correct_answer": self.correct_answer,
            "explanation": self.explanation,
            "user_answer": self.user_answer,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Question":
        return cls(
            id=data.get("id") or new_id(),
            text=data["text"],
            options=list(data["options"]),
            correct_answer=int(data["correct_answer"]),
            explanation=data.get("explanation", ""),
            user_answer=data.get("user_answer"),
        )


@dataclass
class Quiz:
    title: str
    description: str
    category: QuizCategory
    difficulty: Difficulty
    questions: list[Question]
    required_score: int
    user_score: int | None = None
    completion_date: datetime.datetime | None = None
    related_course_id: str | None = None
    related_adventure_id: str | None = None
    id: str = field(default_factory=new_id)

    @property
    def progress(self) -> float:
        if not self.questions:
            return 0.0
        answered = sum(1 for q in self.questions if q.user_answer is not None)
        return answered / len(self.questions)

    @property
    def status(self) -> QuizStatus:
        if self.completion_date is not None:
            return QuizStatus.PASSED if self.is_passed else QuizStatus.FAILED
        return QuizStatus.IN_PROGRESS if self.progress > 0 else QuizStatus.NOT_STARTED

    @property
    def score_percentage(self) -> float:
        if self.user_score is None or not self.questions:
            return 0.0
        return self.user_score / len(self.questions) * 100

    @property
    def is_passed(self) -> bool:
        if self.user_score is None:
            return False
        return self.user_score >= self.required_score

    @property
    def correct_answers_count(self) -> int:
        return sum(1 for q in self.questions if q.is_correct is True)

    @property
    def incorrect_answers_count(self) -> int:
        return sum(1 for q in self.questions if q.is_correct is False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "category": self.category.value,
            "difficulty": self.difficulty.value,
            "questions": [q.to_dict() for q in self.questions],
            "required_score": self.required_score,
            "user_score": self.user_score,
            "completion_date": dt_to_str(self.completion_date),
            "related_course_id": self.related_course_id,
            "related_adventure_id": self.related_adventure_id,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Quiz":
        return cls(
            id=data.get("id") or new_id(),
            title=data["title"],
            description=data.get("description", ""),
            category=QuizCategory(data["category"]),
            difficulty=Difficulty(data["difficulty"]),
            questions=[Question.from_dict(q) for q in data.get("questions") or []],
            required_score=int(data["required_score"]),
            user_score=data.get("user_score"),
            completion_date=dt_from_str(data.get("completion_date")),
            related_course_id=data.get("related_course_id"),
            related_adventure_id=data.get("related_adventure_id"),
        )
