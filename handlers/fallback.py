from aiogram import Router
from aiogram.types import Message, CallbackQuery

from core.texts import MAIN_MENU_TEXT
from keyboards.builders import get_main_menu_keyboard
from utils.ui_utils import safe_delete, send_single_ui_message

router = Router()


@router.message()
async def unknown_text_fallback(message: Message):
    # Keep chat clean and guide user back to supported flows.
    await safe_delete(message)
    await send_single_ui_message(
        message,
        "This command or message is not supported yet. Please choose a section from the menu.",
        reply_markup=get_main_menu_keyboard(),
        user_id=message.from_user.id if message.from_user else None,
    )


@router.callback_query()
async def unknown_callback_fallback(call: CallbackQuery):
    # Prevent stale inline buttons from confusing users.
    await call.answer("This button has expired. Please press /start.", show_alert=True)
    message = call.message if isinstance(call.message, Message) else None
    if not message:
        return
    await safe_delete(message)
    await send_single_ui_message(message, MAIN_MENU_TEXT, reply_markup=get_main_menu_keyboard(), user_id=call.from_user.id)
