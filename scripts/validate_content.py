import sys
import os

# Add project root to path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from core.config import settings
from core.quiz_models import QuizCategory
from database.repositories.catalog_repository import get_adventures, get_challenge_templates, get_courses
from database.repositories.quiz_bank_repository import load_quiz_bank
from services.quiz_service import QuizService


def validate_content():
    print("--- TrailMate Content Validation ---")
    ok = True

    # 1. Quiz bank
    print(f"Checking quiz bank at {settings.quiz_data_path}...")
    bank = load_quiz_bank()
    for category in QuizCategory:
        count = QuizService.questions_count(category, bank)
        if count >= settings.default_quiz_length:
            print(f"✅ {category.value}: {count} questions")
        elif count:
            print(f"⚠️ {category.value}: only {count} questions (quiz length {settings.default_quiz_length})")
        else:
            print(f"⚠️ {category.value}: no questions, fallback quiz will be used")

    # 2. Catalog
    print(f"\nChecking catalog at {settings.catalog_path}...")
    adventures = get_adventures()
    courses = get_courses()
    challenges = get_challenge_templates()
    print(f"Adventures: {len(adventures)}, courses: {len(courses)}, challenges: {len(challenges)}")

    seen_lessons = set()
    for course in courses:
        if not course.lessons:
            print(f"❌ Course '{course.id}' has no lessons and can never be completed.")
            ok = False
        for lesson in course.lessons:
            if lesson.id in seen_lessons:
                print(f"❌ Lesson id '{lesson.id}' is used by more than one course.")
                ok = False
            seen_lessons.add(lesson.id)

    ids = [a.id for a in adventures] + [c.id for c in courses] + [c.id for c in challenges]
    # Telegram limits callback data to 64 bytes
    for item_id in ids + sorted(seen_lessons):
        if len(f"acd_lesson_{item_id}".encode()) > 64:
            print(f"❌ Id '{item_id}' is too long for callback buttons.")
            ok = False

    if ok:
        print("\n🎉 Content verified!")
    return ok


if __name__ == "__main__":
    if validate_content():
        sys.exit(0)
    else:
        sys.exit(1)
