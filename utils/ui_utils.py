from aiogram.types import Message
import logging
import re

from database import kv_get, kv_set

ACTIVE_UI_STATE_KEY = "active_ui_message_id"

_MD_ESC_RE = re.compile(r"([_*`\[])")


def _md_escape(value):
    if value is None:
        return ""
    return _MD_ESC_RE.sub(r"\\\1", str(value))


def _get_progress_bar(percentage: float, length: int = 10) -> str:
    pct = max(0.0, min(100.0, float(percentage)))
    filled = int(round(pct / 100 * length))
    return "🟩" * filled + "⬜" * (length - filled)


def _ui_key(user_id: int, name: str) -> str:
    return f"ui:{user_id}:{name}"


def get_ui_state(user_id: int, name: str) -> str | None:
    try:
        return kv_get(_ui_key(user_id, name))
    except Exception as e:
        logging.error(f"Error reading UI state for {user_id}/{name}: {e}")
        return None


def set_ui_state(user_id: int, name: str, value) -> bool:
    return kv_set(_ui_key(user_id, name), str(value))


async def send_single_ui_message(
    message: Message,
    text: str,
    reply_markup=None,
    parse_mode: str | None = "Markdown",
    user_id: int | None = None
):
    """Replaces the previous bot screen with a new one so the chat stays short."""
    resolved_user_id = user_id or message.chat.id
    prev_active_id = get_ui_state(resolved_user_id, ACTIVE_UI_STATE_KEY)
    if prev_active_id:
        try:
            await message.bot.delete_message(chat_id=resolved_user_id, message_id=int(prev_active_id))
        except Exception:
            pass
    sent = await message.bot.send_message(
        chat_id=resolved_user_id,
        text=text,
        reply_markup=reply_markup,
        parse_mode=parse_mode
    )
    set_ui_state(resolved_user_id, ACTIVE_UI_STATE_KEY, sent.message_id)
    return sent


async def safe_delete(message: Message | None):
    if message is None:
        return
    try:
        await message.delete()
    except Exception:
        pass
