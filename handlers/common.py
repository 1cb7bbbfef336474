from aiogram import Router, F
from aiogram.filters import CommandStart, Command
from aiogram.types import Message, CallbackQuery
from aiogram.fsm.context import FSMContext

from core.texts import BTN_HOME, HELP_TEXT, MAIN_MENU_TEXT
from keyboards.builders import get_main_menu_keyboard
from services.progress_service import ProgressService
from utils.ui_utils import safe_delete, send_single_ui_message

router = Router()


def user_key(user) -> str:
    """The Telegram user id is the single 'current user' identity."""
    return str(user.id)


async def send_main_menu(message: Message, text: str = MAIN_MENU_TEXT, user_id: int | None = None):
    await send_single_ui_message(message, text, reply_markup=get_main_menu_keyboard(), user_id=user_id)


@router.message(CommandStart())
async def cmd_start(message: Message, state: FSMContext, progress_service: ProgressService):
    await safe_delete(message)
    await state.clear()
    if not message.from_user:
        return
    progress = progress_service.get(user_key(message.from_user))
    text = (
        f"👋 Welcome, **{message.from_user.first_name or 'explorer'}**!\n"
        f"⭐ Level **{progress.level}** · {progress.total_points} pts · 🔥 {progress.weekly_streak}\n"
        f"{MAIN_MENU_TEXT}"
    )
    await send_main_menu(message, text, user_id=message.from_user.id)


@router.message(Command("menu"))
@router.message(F.text == BTN_HOME)
async def cmd_menu(message: Message):
    await safe_delete(message)
    await send_main_menu(message, user_id=message.from_user.id if message.from_user else None)


@router.callback_query(F.data == "home")
async def go_to_home(call: CallbackQuery):
    await call.answer()
    message = call.message if isinstance(call.message, Message) else None
    if not message:
        return
    await send_main_menu(message, user_id=call.from_user.id)


@router.message(Command("help"))
async def cmd_help(message: Message):
    await safe_delete(message)
    await send_single_ui_message(message, HELP_TEXT, reply_markup=get_main_menu_keyboard())
