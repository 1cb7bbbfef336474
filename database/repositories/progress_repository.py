import datetime
import json
import logging

from core.config import settings
from core.progress import UserProgress
from database.repositories.kv_repository import kv_get, kv_keys, kv_set


def progress_key(user_id: str) -> str:
    return f"{settings.progress_storage_key}:{user_id}"


def load_progress(user_id: str, now: datetime.datetime | None = None) -> UserProgress:
    """
    Loads the stored progress document for a user.
    Missing or unreadable documents start over from a freshly seeded default.
    """
    key = progress_key(user_id)
    try:
        raw = kv_get(key)
    except Exception as e:
        logging.error(f"Error reading progress for {user_id}: {e}")
        raw = None
    if raw is None:
        return UserProgress.create_default(now)
    try:
        return UserProgress.from_dict(json.loads(raw))
    except (ValueError, KeyError, TypeError, AttributeError) as e:
        logging.error(f"Stored progress for {user_id} is unreadable, resetting: {e}")
        return UserProgress.create_default(now)


def save_progress(user_id: str, progress: UserProgress) -> bool:
    try:
        payload = json.dumps(progress.to_dict(), ensure_ascii=False)
    except (TypeError, ValueError) as e:
        logging.error(f"Error serializing progress for {user_id}: {e}")
        return False
    return kv_set(progress_key(user_id), payload)


def list_progress_user_ids() -> list[str]:
    prefix = f"{settings.progress_storage_key}:"
    return [key[len(prefix):] for key in kv_keys(prefix)]
