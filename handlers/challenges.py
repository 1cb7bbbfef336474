import datetime

from aiogram import Router, F
from aiogram.types import Message, CallbackQuery, InlineKeyboardMarkup, InlineKeyboardButton

from core.models import Challenge, ChallengeType
from core.progress import UserProgress
from core.texts import BTN_BACK, BTN_CHALLENGES
from database.repositories.catalog_repository import get_challenge_template, get_challenge_templates
from handlers.common import user_key
from keyboards.builders import home_row
from services.progress_service import ProgressService
from utils.ui_utils import _get_progress_bar, _md_escape, safe_delete, send_single_ui_message

router = Router()


def format_amount(challenge_type: ChallengeType, value: float) -> str:
    if challenge_type == ChallengeType.DISTANCE:
        return f"{value:.1f} km"
    if challenge_type == ChallengeType.ELEVATION:
        return f"{value:.0f} m"
    if challenge_type == ChallengeType.DURATION:
        return f"{value / 3600:.1f} h"
    return f"{value:.0f}"


def format_challenge_progress(challenge: Challenge, user_id: str, now: datetime.datetime | None = None) -> str:
    value = challenge.progress_for(user_id)
    pct = min(value / challenge.target * 100, 100) if challenge.target else 100
    if challenge.is_active(now):
        window = f"⏳ until {challenge.end_date:%d.%m.%Y}"
    else:
        window = f"⌛ ended {challenge.end_date:%d.%m.%Y}"
    return (
        f"**{_md_escape(challenge.title)}**\n"
        f"{_get_progress_bar(pct)} {format_amount(challenge.type, value)}"
        f" / {format_amount(challenge.type, challenge.target)}\n"
        f"{window} · 🏅 {challenge.reward} pts"
    )


def _challenges_text(progress: UserProgress, user_id: str) -> str:
    lines = ["🏆 **Challenges**\n"]
    if progress.active_challenges:
        lines.append("🔥 **Active**")
        lines.extend(format_challenge_progress(c, user_id) for c in progress.active_challenges)
    if progress.completed_challenges:
        lines.append("\n✅ **Completed**")
        lines.extend(f"• {_md_escape(c.title)} (+{c.reward})" for c in progress.completed_challenges)
    if not progress.active_challenges and not progress.completed_challenges:
        lines.append("You have not joined any challenge yet.")
    return "\n".join(lines)


def _challenges_markup(templates: list[Challenge], progress: UserProgress) -> InlineKeyboardMarkup:
    rows = []
    for challenge in templates:
        if progress.is_challenge_joined(challenge.id):
            continue
        rows.append([InlineKeyboardButton(text=f"➕ {challenge.title}", callback_data=f"chl_show_{challenge.id}")])
    rows.append(home_row())
    return InlineKeyboardMarkup(inline_keyboard=rows)


@router.message(F.text == BTN_CHALLENGES)
async def challenges_handler(message: Message, progress_service: ProgressService):
    await safe_delete(message)
    if not message.from_user:
        return
    user_id = user_key(message.from_user)
    progress = progress_service.get(user_id)
    await send_single_ui_message(
        message,
        _challenges_text(progress, user_id),
        reply_markup=_challenges_markup(get_challenge_templates(), progress),
    )


@router.callback_query(F.data == "chl_list")
async def challenges_list_callback(call: CallbackQuery, progress_service: ProgressService):
    await call.answer()
    user_id = user_key(call.from_user)
    progress = progress_service.get(user_id)
    await call.message.edit_text(
        _challenges_text(progress, user_id),
        reply_markup=_challenges_markup(get_challenge_templates(), progress),
        parse_mode="Markdown",
    )


@router.callback_query(F.data.startswith("chl_show_"))
async def challenge_detail_callback(call: CallbackQuery):
    challenge = get_challenge_template(call.data.removeprefix("chl_show_"))
    if not challenge:
        await call.answer("Challenge not found.", show_alert=True)
        return
    await call.answer()
    days = (challenge.end_date - challenge.start_date).days
    text = (
        f"🏆 **{_md_escape(challenge.title)}**\n\n"
        f"{_md_escape(challenge.description)}\n\n"
        f"🎯 Target: {format_amount(challenge.type, challenge.target)}\n"
        f"📅 Duration: {days} days\n"
        f"🏅 Reward: {challenge.reward} pts"
    )
    markup = InlineKeyboardMarkup(inline_keyboard=[
        [InlineKeyboardButton(text="✅ Join", callback_data=f"chl_join_{challenge.id}")],
        [InlineKeyboardButton(text=BTN_BACK, callback_data="chl_list")],
    ])
    await call.message.edit_text(text, reply_markup=markup, parse_mode="Markdown")


@router.callback_query(F.data.startswith("chl_join_"))
async def challenge_join_callback(call: CallbackQuery, progress_service: ProgressService):
    challenge = get_challenge_template(call.data.removeprefix("chl_join_"))
    if not challenge:
        await call.answer("Challenge not found.", show_alert=True)
        return
    user_id = user_key(call.from_user)
    progress = progress_service.get(user_id)
    if not progress_service.join_challenge(user_id, challenge):
        await call.answer("You already joined this challenge.")
    else:
        await call.answer(f"🏆 Joined: {challenge.title}")
    await call.message.edit_text(
        _challenges_text(progress, user_id),
        reply_markup=_challenges_markup(get_challenge_templates(), progress),
        parse_mode="Markdown",
    )
