import random

from core.models import Difficulty
from core.quiz_models import Question, Quiz, QuizCategory
from database.repositories.quiz_bank_repository import load_quiz_bank
from utils.ops_logging import log_structured

# Share of questions, in percent, that must be answered correctly
PASS_PERCENT = {
    Difficulty.BEGINNER: 60,
    Difficulty.INTERMEDIATE: 70,
    Difficulty.ADVANCED: 80,
    Difficulty.EXPERT: 90,
}

FALLBACK_QUESTIONS = [
    {
        "id": "fallback_1",
        "text": "What is the most important safety rule in outdoor activities?",
        "options": [
            "Always tell someone your plans",
            "Carry expensive equipment",
            "Take lots of photos",
            "Go alone for peace",
        ],
        "correctAnswer": 0,
        "explanation": "Always inform someone about your plans and expected return time for safety.",
    },
    {
        "id": "fallback_2",
        "text": "Why is proper hydration important during hiking?",
        "options": [
            "It's not very important",
            "Prevents dehydration and maintains energy",
            "Makes you walk faster",
            "Only matters in hot weather",
        ],
        "correctAnswer": 1,
        "explanation": "Proper hydration prevents dehydration and helps maintain energy levels.",
    },
    {
        "id": "fallback_3",
        "text": "What should you do if you get lost in the wilderness?",
        "options": [
            "Panic and run in any direction",
            "Stay calm and stay in one place",
            "Keep walking until you find something",
            "Yell continuously for help",
        ],
        "correctAnswer": 1,
        "explanation": "Staying calm and in one place makes you easier to find and conserves energy.",
    },
]


def _to_question(raw: dict) -> Question:
    return Question(
        text=raw["text"],
        options=list(raw["options"]),
        correct_answer=raw["correctAnswer"],
        explanation=raw.get("explanation", ""),
    )


class QuizService:
    @staticmethod
    def required_score(difficulty: Difficulty, total_questions: int) -> int:
        """Number of correct answers needed to pass."""
        return -(-total_questions * PASS_PERCENT[difficulty] // 100)

    @staticmethod
    def generate_quiz(
        category: QuizCategory,
        difficulty: Difficulty,
        question_count: int = 10,
        bank: dict | None = None,
    ) -> Quiz:
        bank = load_quiz_bank() if bank is None else bank
        entry = bank.get(category.bank_key)

        if not entry or not entry.get("questions"):
            log_structured("quiz_fallback", category=category.bank_key, difficulty=difficulty.value)
            return QuizService._fallback_quiz(category, difficulty)

        pool = list(entry["questions"])
        random.shuffle(pool)
        picked = pool[:min(question_count, len(pool))]
        questions = [_to_question(q) for q in picked]

        return Quiz(
            title=f"{entry.get('name') or category.value} - {difficulty.value}",
            description=entry.get("description") or category.detailed_description,
            category=category,
            difficulty=difficulty,
            questions=questions,
            required_score=QuizService.required_score(difficulty, len(questions)),
        )

    @staticmethod
    def _fallback_quiz(category: QuizCategory, difficulty: Difficulty) -> Quiz:
        questions = [_to_question(q) for q in FALLBACK_QUESTIONS]
        return Quiz(
            title=f"{category.value} - {difficulty.value}",
            description="Temporary quiz - question bank unavailable",
            category=category,
            difficulty=difficulty,
            questions=questions,
            required_score=QuizService.required_score(difficulty, len(questions)),
        )

    @staticmethod
    def answer(quiz: Quiz, question_index: int, option_index: int) -> bool:
        """Stores the chosen option and returns whether it was correct."""
        question = quiz.questions[question_index]
        if not 0 <= option_index < len(question.options):
            raise ValueError(f"Option {option_index} out of range")
        question.user_answer = option_index
        return question.is_correct is True

    @staticmethod
    def score_answers(quiz: Quiz) -> int:
        return quiz.correct_answers_count

    @staticmethod
    def available_categories(bank: dict | None = None) -> list[QuizCategory]:
        bank = load_quiz_bank() if bank is None else bank
        return [c for c in QuizCategory if bank.get(c.bank_key, {}).get("questions")]

    @staticmethod
    def questions_count(category: QuizCategory, bank: dict | None = None) -> int:
        bank = load_quiz_bank() if bank is None else bank
        entry = bank.get(category.bank_key) or {}
        return len(entry.get("questions") or [])
