from aiogram import BaseMiddleware
from aiogram.types import Message, CallbackQuery
from aiogram.fsm.context import FSMContext
import logging

from core.texts import MAIN_MENU_BUTTONS


class StateCleanupMiddleware(BaseMiddleware):
    """
    Clears FSM state when the user sends a command, presses a main menu
    button or the home button, so a half-finished quiz never traps them.
    """
    async def __call__(self, handler, event, data):
        state: FSMContext | None = data.get("state")
        if state is None:
            return await handler(event, data)

        reason = None
        if isinstance(event, Message) and event.text:
            if event.text.startswith("/"):
                reason = f"command {event.text.split()[0]}"
            elif event.text in MAIN_MENU_BUTTONS:
                reason = f"menu button {event.text}"
        elif isinstance(event, CallbackQuery) and event.data == "home":
            reason = "'home' callback"

        if reason:
            current_state = await state.get_state()
            if current_state:
                logging.info(f"Clearing state {current_state} for user {event.from_user.id} due to {reason}")
                await state.clear()

        return await handler(event, data)
