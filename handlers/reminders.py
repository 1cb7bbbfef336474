import asyncio
import datetime
import logging

from aiogram import Bot
from aiogram.types import InlineKeyboardMarkup, InlineKeyboardButton

from core.progress import UserProgress
from core.texts import STREAK_REMINDER_TEXT
from database import list_progress_user_ids
from services.progress_service import ProgressService
from utils.ops_logging import log_structured

REMINDER_SEND_CONCURRENCY = 5


def needs_streak_reminder(progress: UserProgress, today: datetime.date) -> bool:
    """A streak is at risk when the last activity happened yesterday."""
    if progress.last_activity_date is None or progress.weekly_streak <= 0:
        return False
    return (today - progress.last_activity_date.date()).days == 1


def _reminder_markup() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[
        [InlineKeyboardButton(text="🏃 Open tracker", callback_data="trk_home")],
        [InlineKeyboardButton(text="🏠 Main menu", callback_data="home")],
    ])


async def send_streak_reminders(bot: Bot, progress_service: ProgressService, today: datetime.date | None = None):
    today = today or datetime.date.today()
    try:
        user_ids = list_progress_user_ids()
    except Exception as e:
        logging.error(f"Streak reminder lookup error: {e}")
        return

    targets = []
    for user_id in user_ids:
        progress = progress_service.get(user_id)
        if needs_streak_reminder(progress, today):
            targets.append((user_id, progress.weekly_streak))
    if not targets:
        return

    sem = asyncio.Semaphore(REMINDER_SEND_CONCURRENCY)

    async def _send_one(user_id: str, streak: int) -> bool:
        async with sem:
            try:
                await bot.send_message(
                    int(user_id),
                    STREAK_REMINDER_TEXT.format(streak=streak),
                    reply_markup=_reminder_markup(),
                    parse_mode="Markdown",
                )
                return True
            except Exception as exc:
                logging.warning("Streak reminder to %s failed: %s", user_id, exc)
                return False

    results = await asyncio.gather(*[_send_one(u, s) for u, s in targets])
    log_structured("streak_reminders_sent", candidates=len(targets), sent=sum(1 for ok in results if ok))
