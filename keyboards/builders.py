from aiogram.types import InlineKeyboardButton, KeyboardButton
from aiogram.utils.keyboard import InlineKeyboardBuilder, ReplyKeyboardBuilder

from core.models import Difficulty, GoalPeriod
from core.quiz_models import QuizCategory
from core.texts import (
    BTN_ACADEMY,
    BTN_ADVENTURES,
    BTN_BACK,
    BTN_CHALLENGES,
    BTN_HOME,
    BTN_PROFILE,
    BTN_QUIZ,
    BTN_TRACKER,
)


def get_main_menu_keyboard():
    builder = ReplyKeyboardBuilder()
    builder.row(KeyboardButton(text=BTN_ADVENTURES), KeyboardButton(text=BTN_ACADEMY))
    builder.row(KeyboardButton(text=BTN_QUIZ), KeyboardButton(text=BTN_TRACKER))
    builder.row(KeyboardButton(text=BTN_CHALLENGES), KeyboardButton(text=BTN_PROFILE))
    return builder.as_markup(resize_keyboard=True)


def home_row() -> list[InlineKeyboardButton]:
    return [InlineKeyboardButton(text=BTN_HOME, callback_data="home")]


def get_quiz_categories_keyboard(categories: list[QuizCategory]):
    builder = InlineKeyboardBuilder()
    for category in categories:
        builder.button(text=category.value, callback_data=f"quiz_cat_{category.bank_key}")
    builder.adjust(2)
    builder.row(*home_row())
    return builder.as_markup()


def get_difficulty_keyboard(callback_prefix: str):
    builder = InlineKeyboardBuilder()
    for difficulty in Difficulty:
        builder.button(text=difficulty.value, callback_data=f"{callback_prefix}_{difficulty.name.lower()}")
    builder.adjust(2)
    builder.row(InlineKeyboardButton(text=BTN_BACK, callback_data="quiz_back"))
    return builder.as_markup()


def get_quiz_options_keyboard(question_index: int, options: list[str]):
    builder = InlineKeyboardBuilder()
    for idx, option in enumerate(options):
        builder.button(text=option, callback_data=f"quiz_answer_{question_index}_{idx}")
    builder.adjust(1)
    return builder.as_markup()


def get_adventure_keyboard(adventure_id: str, is_favorite: bool, is_completed: bool):
    builder = InlineKeyboardBuilder()
    builder.button(
        text="💔 Unfavorite" if is_favorite else "❤️ Favorite",
        callback_data=f"adv_fav_{adventure_id}",
    )
    if not is_completed:
        builder.button(text="✅ Mark completed", callback_data=f"adv_done_{adventure_id}")
    builder.button(text=BTN_BACK, callback_data="adv_list")
    builder.adjust(2, 1)
    return builder.as_markup()


def get_adventure_filter_keyboard(categories: list[str], category: str | None, difficulty: Difficulty | None):
    """Categories are addressed by index so long names stay inside the callback limit."""
    builder = InlineKeyboardBuilder()
    builder.button(text=("• " if category is None else "") + "All categories", callback_data="adv_cat_all")
    for idx, name in enumerate(categories):
        builder.button(text=("• " if name == category else "") + name, callback_data=f"adv_cat_{idx}")
    builder.button(text=("• " if difficulty is None else "") + "Any level", callback_data="adv_lvl_all")
    for level in Difficulty:
        builder.button(text=("• " if level == difficulty else "") + level.value, callback_data=f"adv_lvl_{level.name}")
    builder.adjust(2)
    builder.row(
        InlineKeyboardButton(text="✖️ Clear filters", callback_data="adv_clear"),
        InlineKeyboardButton(text=BTN_BACK, callback_data="adv_list"),
    )
    return builder.as_markup()


def get_tracker_keyboard():
    builder = InlineKeyboardBuilder()
    for period in GoalPeriod:
        builder.button(text=f"📊 {period.value}", callback_data=f"trk_stats_{period.name.lower()}")
    builder.button(text="🎯 Goals", callback_data="trk_goals")
    builder.button(text="🏅 Milestones", callback_data="trk_milestones")
    builder.button(text="🗑 Delete last activity", callback_data="trk_delete_last")
    builder.adjust(3, 2, 1)
    builder.row(*home_row())
    return builder.as_markup()
