import json
import logging

from aiogram import Router, F
from aiogram.filters import Command, CommandObject
from aiogram.types import Message, CallbackQuery, InlineKeyboardMarkup, InlineKeyboardButton

from core.models import Adventure, Difficulty
from core.progress import UserProgress
from core.texts import BTN_ADVENTURES
from database.repositories.catalog_repository import (
    filter_adventures,
    get_adventure,
    get_adventure_categories,
)
from handlers.common import user_key
from keyboards.builders import get_adventure_filter_keyboard, get_adventure_keyboard, home_row
from services.progress_service import ProgressService
from utils.ui_utils import _md_escape, get_ui_state, safe_delete, send_single_ui_message, set_ui_state

router = Router()

ADVENTURE_FILTER_STATE = "adventure_filter"


def load_adventure_filter(user_id: int) -> dict:
    empty = {"category": None, "difficulty": None, "query": None}
    raw = get_ui_state(user_id, ADVENTURE_FILTER_STATE)
    if not raw:
        return empty
    try:
        stored = json.loads(raw)
        difficulty = stored.get("difficulty")
        return {
            "category": stored.get("category") or None,
            "difficulty": Difficulty[difficulty] if difficulty else None,
            "query": stored.get("query") or None,
        }
    except (ValueError, KeyError, AttributeError) as e:
        logging.warning(f"Resetting unreadable adventure filter for {user_id}: {e}")
        return empty


def save_adventure_filter(user_id: int, category: str | None, difficulty: Difficulty | None, query: str | None):
    set_ui_state(
        user_id,
        ADVENTURE_FILTER_STATE,
        json.dumps({
            "category": category,
            "difficulty": difficulty.name if difficulty else None,
            "query": query,
        }),
    )


def describe_filter(adventure_filter: dict) -> str:
    parts = []
    if adventure_filter["category"]:
        parts.append(adventure_filter["category"])
    if adventure_filter["difficulty"]:
        parts.append(adventure_filter["difficulty"].value)
    if adventure_filter["query"]:
        parts.append(f"\"{adventure_filter['query']}\"")
    return " · ".join(parts)


def _adventure_list_text(progress: UserProgress, adventure_filter: dict, found: int) -> str:
    text = (
        "🧭 **Adventures**\n\n"
        f"Completed: {len(progress.completed_adventures)} · Favorites: {len(progress.favorite_adventures)}"
    )
    active = describe_filter(adventure_filter)
    if active:
        text += f"\n🔎 {_md_escape(active)}: {found} found"
        if not found:
            text += "\n\nNothing matches. Try clearing the filters."
    return text


def _adventure_list_markup(adventures: list[Adventure], progress: UserProgress, filtered: bool = False) -> InlineKeyboardMarkup:
    rows = []
    for adventure in adventures:
        marks = ""
        if adventure.id in progress.completed_adventures:
            marks += "✅"
        if adventure.id in progress.favorite_adventures:
            marks += "❤️"
        label = f"{marks} {adventure.title}".strip()
        rows.append([InlineKeyboardButton(text=label, callback_data=f"adv_show_{adventure.id}")])
    filter_row = [InlineKeyboardButton(text="🔎 Filter", callback_data="adv_filter")]
    if filtered:
        filter_row.append(InlineKeyboardButton(text="✖️ Clear", callback_data="adv_clear"))
    rows.append(filter_row)
    rows.append(home_row())
    return InlineKeyboardMarkup(inline_keyboard=rows)


def _adventure_screen(user_id: int, progress: UserProgress) -> tuple[str, InlineKeyboardMarkup]:
    adventure_filter = load_adventure_filter(user_id)
    adventures = filter_adventures(**adventure_filter)
    return (
        _adventure_list_text(progress, adventure_filter, len(adventures)),
        _adventure_list_markup(adventures, progress, filtered=bool(describe_filter(adventure_filter))),
    )

def format_adventure(adventure: Adventure) -> str:
    lines = [
        f"🧭 **{_md_escape(adventure.title)}**",
        f"{adventure.category} · {adventure.difficulty.value} · {adventure.duration or '-'}",
    ]
    if adventure.distance is not None:
        lines.append(f"📏 {adventure.distance:g} km")
    if adventure.location:
        lines.append(f"📍 {_md_escape(adventure.location)}")
    lines.append(f"⭐ {adventure.rating:.1f} ({adventure.reviews} reviews)")
    if adventure.description:
        lines.append(f"\n{_md_escape(adventure.description)}")
    if adventure.tips:
        lines.append("\n💡 **Tips**")
        lines.extend(f"• {_md_escape(tip)}" for tip in adventure.tips)
    if adventure.equipment:
        lines.append("\n🎒 **Equipment**")
        lines.append(", ".join(_md_escape(item) for item in adventure.equipment))
    return "\n".join(lines)


@router.message(F.text == BTN_ADVENTURES)
async def adventures_handler(message: Message, progress_service: ProgressService):
    await safe_delete(message)
    if not message.from_user:
        return
    progress = progress_service.get(user_key(message.from_user))
    text, markup = _adventure_screen(message.from_user.id, progress)
    await send_single_ui_message(message, text, reply_markup=markup)


@router.message(Command("find"))
async def cmd_find(message: Message, command: CommandObject, progress_service: ProgressService):
    """Searches adventure titles and descriptions; `/find` alone drops the search."""
    await safe_delete(message)
    if not message.from_user:
        return
    user_id = message.from_user.id
    adventure_filter = load_adventure_filter(user_id)
    query = (command.args or "").strip() or None
    save_adventure_filter(user_id, adventure_filter["category"], adventure_filter["difficulty"], query)
    text, markup = _adventure_screen(user_id, progress_service.get(user_key(message.from_user)))
    await send_single_ui_message(message, text, reply_markup=markup)


async def _refresh_list(call: CallbackQuery, progress_service: ProgressService):
    text, markup = _adventure_screen(call.from_user.id, progress_service.get(user_key(call.from_user)))
    await call.message.edit_text(text, reply_markup=markup, parse_mode="Markdown")


@router.callback_query(F.data == "adv_list")
async def adventures_list_callback(call: CallbackQuery, progress_service: ProgressService):
    await call.answer()
    await _refresh_list(call, progress_service)


@router.callback_query(F.data == "adv_filter")
async def adventure_filter_menu(call: CallbackQuery):
    await call.answer()
    adventure_filter = load_adventure_filter(call.from_user.id)
    text = "🔎 **Filter adventures**\n\nPick a category and a level. Search by text with `/find <words>`."
    if adventure_filter["query"]:
        text += f"\n\nCurrent search: \"{_md_escape(adventure_filter['query'])}\""
    await call.message.edit_text(
        text,
        reply_markup=get_adventure_filter_keyboard(
            get_adventure_categories(), adventure_filter["category"], adventure_filter["difficulty"]
        ),
        parse_mode="Markdown",
    )


@router.callback_query(F.data.startswith("adv_cat_"))
async def adventure_filter_category(call: CallbackQuery, progress_service: ProgressService):
    raw = call.data.removeprefix("adv_cat_")
    category = None
    if raw != "all":
        categories = get_adventure_categories()
        if not raw.isdigit() or int(raw) >= len(categories):
            await call.answer("This filter is outdated.", show_alert=True)
            return
        category = categories[int(raw)]
    adventure_filter = load_adventure_filter(call.from_user.id)
    save_adventure_filter(call.from_user.id, category, adventure_filter["difficulty"], adventure_filter["query"])
    await call.answer(category or "All categories")
    await _refresh_list(call, progress_service)


@router.callback_query(F.data.startswith("adv_lvl_"))
async def adventure_filter_difficulty(call: CallbackQuery, progress_service: ProgressService):
    raw = call.data.removeprefix("adv_lvl_")
    difficulty = None
    if raw != "all":
        try:
            difficulty = Difficulty[raw]
        except KeyError:
            await call.answer("Unknown level.", show_alert=True)
            return
    adventure_filter = load_adventure_filter(call.from_user.id)
    save_adventure_filter(call.from_user.id, adventure_filter["category"], difficulty, adventure_filter["query"])
    await call.answer(difficulty.value if difficulty else "Any level")
    await _refresh_list(call, progress_service)


@router.callback_query(F.data == "adv_clear")
async def adventure_filter_clear(call: CallbackQuery, progress_service: ProgressService):
    save_adventure_filter(call.from_user.id, None, None, None)
    await call.answer("Filters cleared")
    await _refresh_list(call, progress_service)


async def _show_adventure(call: CallbackQuery, adventure: Adventure, progress: UserProgress):
    await call.message.edit_text(
        format_adventure(adventure),
        reply_markup=get_adventure_keyboard(
            adventure.id,
            is_favorite=adventure.id in progress.favorite_adventures,
            is_completed=adventure.id in progress.completed_adventures,
        ),
        parse_mode="Markdown",
    )


@router.callback_query(F.data.startswith("adv_show_"))
async def adventure_detail(call: CallbackQuery, progress_service: ProgressService):
    adventure = get_adventure(call.data.removeprefix("adv_show_"))
    if not adventure:
        await call.answer("Adventure not found.", show_alert=True)
        return
    await call.answer()
    await _show_adventure(call, adventure, progress_service.get(user_key(call.from_user)))


@router.callback_query(F.data.startswith("adv_fav_"))
async def adventure_toggle_favorite(call: CallbackQuery, progress_service: ProgressService):
    adventure = get_adventure(call.data.removeprefix("adv_fav_"))
    if not adventure:
        await call.answer("Adventure not found.", show_alert=True)
        return
    user_id = user_key(call.from_user)
    is_favorite = progress_service.toggle_favorite(user_id, adventure.id)
    await call.answer("Added to favorites" if is_favorite else "Removed from favorites")
    await _show_adventure(call, adventure, progress_service.get(user_id))


@router.callback_query(F.data.startswith("adv_done_"))
async def adventure_mark_completed(call: CallbackQuery, progress_service: ProgressService):
    adventure = get_adventure(call.data.removeprefix("adv_done_"))
    if not adventure:
        await call.answer("Adventure not found.", show_alert=True)
        return
    user_id = user_key(call.from_user)
    points = progress_service.mark_adventure_completed(user_id, adventure)
    await call.answer(f"✅ Completed! +{points} pts" if points else "Already completed")
    await _show_adventure(call, adventure, progress_service.get(user_id))
