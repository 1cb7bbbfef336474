from aiogram import Router
from aiogram.filters import Command
from aiogram.types import Message

from core.config import settings
from database import list_progress_user_ids
from database.repositories.catalog_repository import (
    clear_catalog_cache,
    get_adventures,
    get_challenge_templates,
    get_courses,
)
from core.quiz_models import QuizCategory
from database.repositories.quiz_bank_repository import clear_quiz_bank_cache, load_quiz_bank
from services.quiz_service import QuizService
from utils.ops_logging import log_structured
from utils.ui_utils import send_single_ui_message

router = Router()


def _is_admin(user_id: int) -> bool:
    admin_id = settings.admin_id
    if not admin_id:
        return False
    return str(user_id) == str(admin_id)


async def _ensure_admin(message: Message) -> bool:
    if message.from_user and _is_admin(message.from_user.id):
        return True
    await send_single_ui_message(message, "⛔ This command is for the admin only.")
    return False


def _content_summary() -> str:
    bank = load_quiz_bank()
    questions = sum(len(entry.get("questions") or []) for entry in bank.values())
    filled = QuizService.available_categories(bank)
    return (
        f"🧭 Adventures: {len(get_adventures())}\n"
        f"🎓 Courses: {len(get_courses())}\n"
        f"🏆 Challenges: {len(get_challenge_templates())}\n"
        f"🧠 Quiz categories with questions: {len(filled)}/{len(QuizCategory)} ({questions} questions)"
    )


@router.message(Command("health"))
async def health_cmd(message: Message):
    if not await _ensure_admin(message):
        return

    me = await message.bot.get_me()
    from utils.scheduler import get_scheduler_health
    scheduler = get_scheduler_health()

    text = (
        "🩺 **Bot health**\n\n"
        f"🤖 @{me.username}\n"
        f"💾 DB: `{settings.db_path}`\n"
        f"👥 Users with progress: {len(list_progress_user_ids())}\n"
        f"⏰ Scheduler: {'on' if scheduler['started'] else 'off'}"
        f" (next: {scheduler['next_run_time'] or '-'})\n\n"
        f"{_content_summary()}"
    )
    await send_single_ui_message(message, text)


@router.message(Command("reload_content"))
async def reload_content_cmd(message: Message):
    if not await _ensure_admin(message):
        return
    clear_catalog_cache()
    clear_quiz_bank_cache()
    log_structured("content_reloaded", admin_id=message.from_user.id)
    await send_single_ui_message(message, f"🔄 **Content reloaded**\n\n{_content_summary()}")
