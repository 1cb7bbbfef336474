from aiogram import Router, F
from aiogram.filters import Command
from aiogram.types import Message, InlineKeyboardMarkup, CallbackQuery

from core.progress import POINTS_PER_LEVEL, UserProgress
from core.texts import BTN_PROFILE
from handlers.common import user_key
from keyboards.builders import home_row
from services.progress_service import ProgressService
from utils.ui_utils import _get_progress_bar, _md_escape, safe_delete, send_single_ui_message

router = Router()


def _profile_text(full_name: str, progress: UserProgress) -> str:
    level_points = progress.total_points % POINTS_PER_LEVEL
    perc = int(level_points * 100 / POINTS_PER_LEVEL)
    lines = [
        "👤 **PROFILE**",
        "───────────────────",
        f"📋 **Name:** {_md_escape(full_name)}",
        f"⭐ **Level:** {progress.level}",
        f"🏅 **Points:** {progress.total_points}",
        f"{_get_progress_bar(perc)} {level_points}/{POINTS_PER_LEVEL} to level {progress.level + 1}",
        f"🔥 **Streak:** {progress.weekly_streak} day(s)",
        "",
        f"🧭 Adventures completed: {len(progress.completed_adventures)}",
        f"❤️ Favorites: {len(progress.favorite_adventures)}",
        f"📖 Lessons completed: {len(progress.completed_lessons)}",
        f"🎓 Courses completed: {progress.completed_courses_count}",
        f"🧠 Quizzes taken: {progress.completed_quizzes_count}",
        f"📜 Certificates: {len(progress.certificates)}",
        f"🏆 Challenges won: {len(progress.completed_challenges)}",
        f"🏅 Milestones: {sum(1 for m in progress.milestones if m.is_achieved)}/{len(progress.milestones)}",
    ]
    if progress.activity_count:
        lines.append("\n🏃 **Activities**")
        for activity_type, count in sorted(progress.activity_count.items(), key=lambda item: -item[1]):
            lines.append(f"• {activity_type.value}: {count}")
    lines.append("───────────────────")
    return "\n".join(lines)


def _profile_menu() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[home_row()])


@router.message(F.text == BTN_PROFILE)
@router.message(Command("profile"))
async def profile_handler(message: Message, progress_service: ProgressService):
    await safe_delete(message)
    if not message.from_user:
        return
    progress = progress_service.get(user_key(message.from_user))
    text = _profile_text(message.from_user.full_name, progress)
    await send_single_ui_message(message, text, reply_markup=_profile_menu())


@router.callback_query(F.data == "profile_back")
async def profile_back(call: CallbackQuery, progress_service: ProgressService):
    await call.answer()
    progress = progress_service.get(user_key(call.from_user))
    text = _profile_text(call.from_user.full_name or "Explorer", progress)
    await call.message.edit_text(text, reply_markup=_profile_menu(), parse_mode="Markdown")
