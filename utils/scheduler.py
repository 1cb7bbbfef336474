from apscheduler.schedulers.asyncio import AsyncIOScheduler
from aiogram import Bot
import logging

from core.config import settings
from services.progress_service import ProgressService

SCHEDULER_JOB_ID_STREAK_REMINDER = "streak_reminder"
_scheduler: AsyncIOScheduler | None = None


async def start_scheduler(bot: Bot, progress_service: ProgressService):
    from handlers.reminders import send_streak_reminders
    global _scheduler
    if not settings.streak_reminder_enabled:
        logging.info("Scheduler disabled (STREAK_REMINDER_ENABLED=0).")
        _scheduler = None
        return
    scheduler = AsyncIOScheduler()
    hour, minute = _parse_time_utc(settings.streak_reminder_time_utc)
    scheduler.add_job(
        send_streak_reminders,
        "cron",
        hour=hour,
        minute=minute,
        timezone="UTC",
        args=[bot, progress_service],
        id=SCHEDULER_JOB_ID_STREAK_REMINDER,
        replace_existing=True,
        coalesce=True,
        max_instances=1,
    )
    scheduler.start()
    _scheduler = scheduler
    logging.info("Scheduler started. streak_reminder=%02d:%02d UTC", hour, minute)


def stop_scheduler():
    global _scheduler
    if _scheduler is not None:
        try:
            _scheduler.shutdown(wait=False)
        except Exception:
            pass
        _scheduler = None


def get_scheduler_health():
    """
    Returns best-effort scheduler status for ops checks.
    """
    info = {"started": False, "next_run_time": None}
    if _scheduler is None:
        return info
    info["started"] = bool(_scheduler.running)
    job = _scheduler.get_job(SCHEDULER_JOB_ID_STREAK_REMINDER)
    if job and job.next_run_time:
        info["next_run_time"] = job.next_run_time.isoformat()
    return info


def _parse_time_utc(raw: str):
    default = (18, 0)
    try:
        hour_str, minute_str = str(raw).strip().split(":", 1)
        hour = int(hour_str)
        minute = int(minute_str)
        if 0 <= hour <= 23 and 0 <= minute <= 59:
            return hour, minute
    except Exception:
        pass
    return default
