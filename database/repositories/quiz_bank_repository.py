import json
import logging
from functools import lru_cache
from pathlib import Path

from core.config import settings


def _clean_question(raw) -> dict | None:
    if not isinstance(raw, dict):
        return None
    text = str(raw.get("text") or "").strip()
    options = raw.get("options")
    correct = raw.get("correctAnswer")
    if not text or not isinstance(options, list) or len(options) < 2:
        return None
    if not isinstance(correct, int) or not 0 <= correct < len(options):
        return None
    return {
        "id": str(raw.get("id") or ""),
        "text": text,
        "options": [str(opt) for opt in options],
        "correctAnswer": correct,
        "explanation": str(raw.get("explanation") or ""),
    }


def parse_quiz_bank(document) -> dict:
    """
    Normalizes a quiz bank document of the form
    {"categories": {key: {"name", "description", "questions": [...]}}}.
    Entries that do not have that shape are dropped.
    """
    if not isinstance(document, dict) or not isinstance(document.get("categories"), dict):
        return {}
    bank = {}
    for key, entry in document["categories"].items():
        if not isinstance(entry, dict):
            logging.warning("Skipping malformed quiz category %s", key)
            continue
        raw_questions = entry.get("questions") if isinstance(entry.get("questions"), list) else []
        questions = [q for q in (_clean_question(item) for item in raw_questions) if q]
        if len(questions) != len(raw_questions):
            logging.warning("Dropped %d malformed questions in %s", len(raw_questions) - len(questions), key)
        bank[str(key)] = {
            "name": str(entry.get("name") or key),
            "description": str(entry.get("description") or ""),
            "questions": questions,
        }
    return bank


@lru_cache(maxsize=4)
def _load_quiz_bank_cached(path: str) -> dict:
    file_path = Path(path)
    if not file_path.exists():
        logging.warning("Quiz data file not found: %s", path)
        return {}
    try:
        with file_path.open(encoding="utf-8") as fh:
            document = json.load(fh)
    except (OSError, ValueError) as e:
        logging.error(f"Error loading quiz data from {path}: {e}")
        return {}
    bank = parse_quiz_bank(document)
    logging.info("Quiz bank loaded from %s: %d categories", path, len(bank))
    return bank


def load_quiz_bank(path: str | None = None) -> dict:
    return _load_quiz_bank_cached(path or settings.quiz_data_path)


def clear_quiz_bank_cache():
    _load_quiz_bank_cached.cache_clear()
