import datetime
import math

from aiogram import Router, F
from aiogram.filters import Command, CommandObject
from aiogram.types import Message, CallbackQuery, InlineKeyboardMarkup, InlineKeyboardButton

from core.config import settings
from core.models import ActivityStats, ActivityType, Difficulty, GoalPeriod, SportActivity
from core.progress import ActivityOutcome, UserProgress
from core.texts import BTN_TRACKER, HELP_TEXT
from handlers.common import user_key
from keyboards.builders import get_tracker_keyboard
from services.progress_service import ProgressService
from services.tracker_service import TrackerService
from utils.ui_utils import _get_progress_bar, safe_delete, send_single_ui_message

router = Router()

ACTIVITY_ALIASES = {
    "hiking": ActivityType.HIKING,
    "hike": ActivityType.HIKING,
    "climbing": ActivityType.CLIMBING,
    "climb": ActivityType.CLIMBING,
    "biking": ActivityType.BIKING,
    "bike": ActivityType.BIKING,
    "mtb": ActivityType.BIKING,
    "swimming": ActivityType.SWIMMING,
    "swim": ActivityType.SWIMMING,
    "running": ActivityType.RUNNING,
    "run": ActivityType.RUNNING,
    "yoga": ActivityType.YOGA,
}


def _parse_log_command(args: str | None) -> tuple[ActivityType, float, float | None, Difficulty]:
    """
    Parses ``<type> <minutes> [km] [difficulty]``.
    Returns (type, duration in seconds, distance, difficulty); raises ValueError.
    """
    parts = (args or "").split()
    if len(parts) < 2:
        raise ValueError("Usage: /log <type> <minutes> [km] [difficulty]")

    activity_type = ACTIVITY_ALIASES.get(parts[0].lower())
    if activity_type is None:
        raise ValueError(f"Unknown activity type: {parts[0]}")

    try:
        minutes = float(parts[1].replace(",", "."))
    except ValueError:
        raise ValueError(f"Minutes must be a number: {parts[1]}")
    if not math.isfinite(minutes) or minutes <= 0:
        raise ValueError("Minutes must be positive")

    distance = None
    difficulty = Difficulty.BEGINNER
    for token in parts[2:]:
        try:
            value = float(token.replace(",", "."))
        except ValueError:
            try:
                difficulty = Difficulty[token.upper()]
            except KeyError:
                raise ValueError(f"Unknown value: {token}")
            continue
        if not math.isfinite(value):
            raise ValueError(f"Distance must be a number: {token}")
        if value < 0:
            raise ValueError("Distance cannot be negative")
        distance = value

    return activity_type, minutes * 60, distance, difficulty


def _format_duration(seconds: float) -> str:
    minutes = int(seconds // 60)
    hours, minutes = divmod(minutes, 60)
    return f"{hours}h {minutes:02d}m" if hours else f"{minutes}m"


def format_activity_line(activity: SportActivity) -> str:
    distance = f" · {activity.distance:.1f} km" if activity.distance is not None else ""
    return (
        f"• {activity.start_time:%d.%m %H:%M} {activity.type.value}: "
        f"{_format_duration(activity.duration)}{distance} · {activity.calories} kcal"
    )


def format_stats(period: GoalPeriod, stats: ActivityStats) -> str:
    lines = [
        f"📊 **{period.value} stats**\n",
        f"🏃 Activities: {stats.activities_total}",
        f"📏 Distance: {stats.total_distance:.1f} km",
        f"⏱ Duration: {_format_duration(stats.total_duration)}",
        f"🔥 Calories: {stats.total_calories} kcal",
    ]
    if stats.activity_count:
        lines.append("")
        for activity_type, count in sorted(stats.activity_count.items(), key=lambda item: -item[1]):
            lines.append(f"• {activity_type.value}: {count}")
    return "\n".join(lines)


def format_outcome(activity: SportActivity, outcome: ActivityOutcome) -> str:
    lines = [
        "✅ **Activity logged!**\n",
        format_activity_line(activity),
        f"\n⭐ +{outcome.points_awarded} pts · 🔥 Streak: {outcome.streak}",
    ]
    for milestone in outcome.milestones_achieved:
        lines.append(f"🏅 Milestone: **{milestone.title}** (+{milestone.reward})")
    for challenge in outcome.challenges_completed:
        lines.append(f"🏆 Challenge completed: **{challenge.title}** (+{challenge.reward})")
    return "\n".join(lines)


def format_tracker_overview(progress: UserProgress) -> str:
    lines = [
        "🏃 **Tracker**\n",
        f"📏 Total distance: {progress.total_distance:.1f} km",
        f"⏱ Total time: {_format_duration(progress.total_duration)}",
        f"🔥 Calories: {progress.total_calories} kcal",
        f"📅 Streak: {progress.weekly_streak}",
    ]
    recent = progress.recent_activities(settings.recent_activities_limit)
    if recent:
        lines.append("\n🕒 **Recent**")
        lines.extend(format_activity_line(a) for a in reversed(recent))
    else:
        lines.append("\nNo activities yet. Log one with `/log hiking 60 5`.")
    return "\n".join(lines)


def _back_markup() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[[InlineKeyboardButton(text="🔙 Tracker", callback_data="trk_home")]])


@router.message(F.text == BTN_TRACKER)
async def tracker_handler(message: Message, progress_service: ProgressService):
    await safe_delete(message)
    if not message.from_user:
        return
    progress = progress_service.get(user_key(message.from_user))
    await send_single_ui_message(message, format_tracker_overview(progress), reply_markup=get_tracker_keyboard())


@router.callback_query(F.data == "trk_home")
async def tracker_home_callback(call: CallbackQuery, progress_service: ProgressService):
    await call.answer()
    progress = progress_service.get(user_key(call.from_user))
    await call.message.edit_text(
        format_tracker_overview(progress),
        reply_markup=get_tracker_keyboard(),
        parse_mode="Markdown",
    )


@router.message(Command("log"))
async def cmd_log(message: Message, command: CommandObject, progress_service: ProgressService):
    if not message.from_user:
        return
    try:
        activity_type, duration, distance, difficulty = _parse_log_command(command.args)
    except ValueError as e:
        await message.answer(f"⚠️ {e}\n\n{HELP_TEXT}", parse_mode="Markdown")
        return

    activity = TrackerService.build_activity(
        activity_type,
        start_time=datetime.datetime.now(),
        duration=duration,
        difficulty=difficulty,
        distance=distance,
    )
    user_id = user_key(message.from_user)
    outcome = progress_service.record_activity(user_id, activity)
    completed_goals = progress_service.refresh_goals(user_id)

    text = format_outcome(activity, outcome)
    for goal in completed_goals:
        text += f"\n🎯 Goal reached: {goal.period.value} {goal.type.value} {goal.target:g} {goal.type.unit}"
    await message.answer(text, parse_mode="Markdown", reply_markup=get_tracker_keyboard())


@router.callback_query(F.data.startswith("trk_stats_"))
async def tracker_stats_callback(call: CallbackQuery, progress_service: ProgressService):
    try:
        period = GoalPeriod[call.data.removeprefix("trk_stats_").upper()]
    except KeyError:
        await call.answer("Unknown period.", show_alert=True)
        return
    await call.answer()
    stats = TrackerService.get_stats(progress_service.get(user_key(call.from_user)), period)
    await call.message.edit_text(format_stats(period, stats), reply_markup=_back_markup(), parse_mode="Markdown")


@router.callback_query(F.data == "trk_goals")
async def tracker_goals_callback(call: CallbackQuery, progress_service: ProgressService):
    await call.answer()
    user_id = user_key(call.from_user)
    progress_service.refresh_goals(user_id)
    progress = progress_service.get(user_id)

    lines = ["🎯 **Goals**\n"]
    for goal in progress.goals:
        percentage = min(goal.progress / goal.target * 100, 100) if goal.target else 100
        mark = "✅" if goal.is_completed else "▫️"
        lines.append(
            f"{mark} {goal.period.value} {goal.type.value}: "
            f"{goal.progress:.1f}/{goal.target:g} {goal.type.unit}\n"
            f"{_get_progress_bar(percentage)} {percentage:.0f}%"
        )
    if not progress.goals:
        lines.append("No goals yet.")
    await call.message.edit_text("\n".join(lines), reply_markup=_back_markup(), parse_mode="Markdown")


@router.callback_query(F.data == "trk_milestones")
async def tracker_milestones_callback(call: CallbackQuery, progress_service: ProgressService):
    await call.answer()
    progress = progress_service.get(user_key(call.from_user))
    lines = ["🏅 **Milestones**\n"]
    for milestone in progress.milestones:
        if milestone.is_achieved:
            achieved = f" ({milestone.achieved_date:%d.%m.%Y})" if milestone.achieved_date else ""
            lines.append(f"✅ **{milestone.title}**{achieved}")
        else:
            lines.append(f"🔒 **{milestone.title}** (+{milestone.reward})")
        lines.append(f"   {milestone.description}")
    await call.message.edit_text("\n".join(lines), reply_markup=_back_markup(), parse_mode="Markdown")


@router.callback_query(F.data == "trk_delete_last")
async def tracker_delete_last_callback(call: CallbackQuery, progress_service: ProgressService):
    user_id = user_key(call.from_user)
    progress = progress_service.get(user_id)
    if not progress.activities:
        await call.answer("Nothing to delete.", show_alert=True)
        return
    last = progress.activities[-1]
    progress_service.delete_activity(user_id, last.id)
    await call.answer(f"🗑 Deleted: {last.type.value}")
    await call.message.edit_text(
        format_tracker_overview(progress_service.get(user_id)),
        reply_markup=get_tracker_keyboard(),
        parse_mode="Markdown",
    )
