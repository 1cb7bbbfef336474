import asyncio
import logging
import sys
from aiogram import Bot, Dispatcher, types
from aiogram.fsm.storage.memory import MemoryStorage

from core.config import settings
from database import create_table
from services.progress_service import ProgressService
from utils.scheduler import start_scheduler, stop_scheduler
from utils.fsm_utils import StateCleanupMiddleware

from handlers.common import router as common_router
from handlers.adventures import router as adventures_router
from handlers.academy import router as academy_router
from handlers.quiz import router as quiz_router
from handlers.tracker import router as tracker_router
from handlers.challenges import router as challenges_router
from handlers.profile import router as profile_router
from handlers.admin_ops import router as admin_ops_router
from handlers.fallback import router as fallback_router

async def main():
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stdout
    )

    # Initialize Database
    create_table()
    logging.info("DB path: %s", settings.db_path)

    if not settings.bot_token:
        logging.error("BOT_TOKEN is not set!")
        return

    # Bot & Dispatcher
    bot = Bot(token=settings.bot_token)
    progress_service = ProgressService()
    dp = Dispatcher(storage=MemoryStorage(), progress_service=progress_service)

    # Middlewares
    dp.message.outer_middleware(StateCleanupMiddleware())
    dp.callback_query.outer_middleware(StateCleanupMiddleware())

    # Register Routers
    routers = [
        common_router, adventures_router, academy_router,
        quiz_router, tracker_router, challenges_router,
        profile_router, admin_ops_router, fallback_router
    ]
    for router in routers:
        dp.include_router(router)

    # Global Error Handler
    @dp.error()
    async def global_error_handler(event: types.ErrorEvent):
        logging.exception(f"Global error: {event.exception}")
        if event.update.message:
            await event.update.message.answer(
                "⚠️ Sorry, something went wrong. Please try again or press /start."
            )
        elif event.update.callback_query:
            await event.update.callback_query.answer(
                "⚠️ Something went wrong. Please return to the main menu.",
                show_alert=True
            )
        return True

    # Bot Commands (scoped): default users do not see admin commands.
    user_commands = [
        types.BotCommand(command="start", description="Start the bot"),
        types.BotCommand(command="menu", description="Main menu"),
        types.BotCommand(command="log", description="Log an activity"),
        types.BotCommand(command="find", description="Search adventures"),
        types.BotCommand(command="profile", description="My progress"),
        types.BotCommand(command="help", description="Help"),
    ]
    await bot.set_my_commands(
        user_commands,
        scope=types.BotCommandScopeDefault(),
    )

    if settings.admin_id:
        admin_commands = user_commands + [
            types.BotCommand(command="health", description="Bot health"),
            types.BotCommand(command="reload_content", description="Reload catalog and quiz bank"),
        ]
        await bot.set_my_commands(
            admin_commands,
            scope=types.BotCommandScopeChat(chat_id=int(settings.admin_id)),
        )

    await start_scheduler(bot, progress_service)

    await bot.delete_webhook(drop_pending_updates=True)
    logging.info("🚀 TrailMate bot started in polling mode.")
    try:
        await dp.start_polling(bot)
    finally:
        stop_scheduler()

if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logging.info("Bot stopped by user.")
