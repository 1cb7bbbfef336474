import datetime
import json
import logging
from functools import lru_cache
from pathlib import Path

from core.config import settings
from core.models import Adventure, Challenge, ChallengeType, Course, Difficulty


@lru_cache(maxsize=4)
def _load_catalog_cached(path: str) -> dict:
    file_path = Path(path)
    if not file_path.exists():
        logging.warning("Catalog file not found: %s", path)
        return {}
    try:
        with file_path.open(encoding="utf-8") as fh:
            document = json.load(fh)
    except (OSError, ValueError) as e:
        logging.error(f"Error loading catalog from {path}: {e}")
        return {}
    return document if isinstance(document, dict) else {}


def _section(name: str) -> list:
    items = _load_catalog_cached(settings.catalog_path).get(name)
    return items if isinstance(items, list) else []


def clear_catalog_cache():
    _load_catalog_cached.cache_clear()


def get_adventures() -> list[Adventure]:
    adventures = []
    for item in _section("adventures"):
        try:
            adventures.append(Adventure.from_dict(item))
        except (KeyError, ValueError, TypeError) as e:
            logging.warning(f"Skipping malformed adventure: {e}")
    return adventures


def get_adventure(adventure_id: str) -> Adventure | None:
    return next((a for a in get_adventures() if a.id == adventure_id), None)


def get_courses() -> list[Course]:
    courses = []
    for item in _section("courses"):
        try:
            courses.append(Course.from_dict(item))
        except (KeyError, ValueError, TypeError) as e:
            logging.warning(f"Skipping malformed course: {e}")
    return courses


def get_course(course_id: str) -> Course | None:
    return next((c for c in get_courses() if c.id == course_id), None)


def find_course_for_lesson(lesson_id: str) -> Course | None:
    return next((c for c in get_courses() if c.find_lesson(lesson_id)), None)


def get_challenge_templates(now: datetime.datetime | None = None) -> list[Challenge]:
    """Builds fresh challenges whose window starts now."""
    challenges = []
    for item in _section("challenges"):
        try:
            challenges.append(
                Challenge.create(
                    id=str(item["id"]),
                    title=item["title"],
                    description=item.get("description", ""),
                    type=ChallengeType(item["type"]),
                    target=float(item["target"]),
                    duration_days=int(item.get("duration_days", 7)),
                    reward=int(item.get("reward", 0)),
                    now=now,
                )
            )
        except (KeyError, ValueError, TypeError) as e:
            logging.warning(f"Skipping malformed challenge: {e}")
    return challenges


def get_challenge_template(challenge_id: str, now: datetime.datetime | None = None) -> Challenge | None:
    return next((c for c in get_challenge_templates(now) if c.id == challenge_id), None)


def get_adventure_categories() -> list[str]:
    return sorted({a.category for a in get_adventures() if a.category})


def filter_adventures(
    category: str | None = None,
    difficulty: Difficulty | None = None,
    query: str | None = None,
    adventures: list[Adventure] | None = None,
) -> list[Adventure]:
    """Narrows the adventures by category, difficulty and a title/description search."""
    result = get_adventures() if adventures is None else list(adventures)
    if category:
        result = [a for a in result if a.category == category]
    if difficulty is not None:
        result = [a for a in result if a.difficulty == difficulty]
    needle = (query or "").strip().lower()
    if needle:
        result = [a for a in result if needle in a.title.lower() or needle in a.description.lower()]
    return result
