import os
from dotenv import load_dotenv
from dataclasses import dataclass

load_dotenv()

_PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))


def _resolve_path(raw_path: str, default: str) -> str:
    candidate = (raw_path or "").strip() or default
    candidate = os.path.expanduser(candidate)
    if os.path.isabs(candidate):
        return os.path.abspath(candidate)
    return os.path.abspath(os.path.join(_PROJECT_ROOT, candidate))


@dataclass(frozen=True)
class Config:
    bot_token: str = os.getenv("BOT_TOKEN", "")
    admin_id: int = int(os.getenv("ADMIN_ID", "0"))
    db_path: str = _resolve_path(os.getenv("DB_PATH", ""), "./trailmate.db")

    # Static content
    quiz_data_path: str = _resolve_path(os.getenv("QUIZ_DATA_PATH", ""), "./data/quiz_data.json")
    catalog_path: str = _resolve_path(os.getenv("CATALOG_PATH", ""), "./data/catalog.json")

    # Progress storage
    progress_storage_key: str = os.getenv("PROGRESS_STORAGE_KEY", "userProgress").strip() or "userProgress"

    # Quiz & tracker tuning
    default_quiz_length: int = int(os.getenv("DEFAULT_QUIZ_LENGTH", "10"))
    user_weight_kg: float = float(os.getenv("USER_WEIGHT_KG", "70"))

    # Scheduler
    streak_reminder_enabled: bool = os.getenv("STREAK_REMINDER_ENABLED", "True").lower() == "true"
    streak_reminder_time_utc: str = os.getenv("STREAK_REMINDER_TIME_UTC", "18:00")

    # UI Constants
    recent_activities_limit: int = 5

# Global Instance
settings = Config()
