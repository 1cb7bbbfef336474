from aiogram import Router, F
from aiogram.types import Message, CallbackQuery, InlineKeyboardMarkup
from aiogram.fsm.context import FSMContext
from aiogram.fsm.state import State, StatesGroup

from core.config import settings
from core.models import Difficulty
from core.progress import calculate_grade
from core.quiz_models import Quiz, QuizCategory
from core.texts import BTN_QUIZ, GRADE_EMOJI
from handlers.common import user_key
from keyboards.builders import (
    get_difficulty_keyboard,
    get_quiz_categories_keyboard,
    get_quiz_options_keyboard,
    home_row,
)
from services.progress_service import ProgressService
from services.quiz_service import QuizService
from utils.ui_utils import _md_escape, safe_delete, send_single_ui_message

router = Router()

QUIZ_INTRO_TEXT = "🧠 **Knowledge quizzes**\n\nPick a category to test yourself:"


class QuizState(StatesGroup):
    choosing_category = State()
    choosing_difficulty = State()
    in_progress = State()


def format_question(quiz: Quiz, index: int) -> str:
    question = quiz.questions[index]
    return (
        f"❓ **Question {index + 1}/{len(quiz.questions)}**\n"
        f"_{_md_escape(quiz.title)}_\n\n"
        f"{_md_escape(question.text)}"
    )


def format_result(quiz: Quiz, passed: bool) -> str:
    total = len(quiz.questions)
    percentage = quiz.score_percentage
    lines = [
        "🏁 **Quiz finished!**\n",
        f"{_md_escape(quiz.title)}",
        f"✅ Correct: {quiz.correct_answers_count}/{total} ({percentage:.0f}%)",
        f"🎯 Needed: {quiz.required_score}",
    ]
    if passed:
        grade = calculate_grade(percentage)
        lines.append(f"\n{GRADE_EMOJI.get(grade, '📜')} Passed with grade **{grade}**. Certificate issued!")
    else:
        lines.append("\n📚 Not passed this time. Review the topic and try again.")
    return "\n".join(lines)


@router.message(F.text == BTN_QUIZ)
async def quiz_start_handler(message: Message, state: FSMContext):
    await safe_delete(message)
    await send_single_ui_message(
        message,
        QUIZ_INTRO_TEXT,
        reply_markup=get_quiz_categories_keyboard(list(QuizCategory)),
    )
    await state.set_state(QuizState.choosing_category)


@router.callback_query(F.data == "quiz_back")
async def quiz_back_handler(call: CallbackQuery, state: FSMContext):
    await call.answer()
    await call.message.edit_text(
        QUIZ_INTRO_TEXT,
        reply_markup=get_quiz_categories_keyboard(list(QuizCategory)),
        parse_mode="Markdown",
    )
    await state.set_state(QuizState.choosing_category)


@router.callback_query(F.data.startswith("quiz_cat_"))
async def quiz_category_handler(call: CallbackQuery, state: FSMContext):
    category = QuizCategory.from_bank_key(call.data.removeprefix("quiz_cat_"))
    if category is None:
        await call.answer("Unknown category.", show_alert=True)
        return
    await call.answer()
    await state.update_data(category=category.bank_key)
    count = QuizService.questions_count(category)
    await call.message.edit_text(
        f"📂 **{category.value}**\n{category.detailed_description}\n\n"
        f"Questions in bank: {count}\n\nChoose a difficulty:",
        reply_markup=get_difficulty_keyboard("quiz_diff"),
        parse_mode="Markdown",
    )
    await state.set_state(QuizState.choosing_difficulty)


@router.callback_query(QuizState.choosing_difficulty, F.data.startswith("quiz_diff_"))
async def quiz_difficulty_handler(call: CallbackQuery, state: FSMContext):
    data = await state.get_data()
    category = QuizCategory.from_bank_key(data.get("category", ""))
    try:
        difficulty = Difficulty[call.data.removeprefix("quiz_diff_").upper()]
    except KeyError:
        difficulty = None
    if category is None or difficulty is None:
        await call.answer("Please start the quiz again.", show_alert=True)
        await state.clear()
        return

    quiz = QuizService.generate_quiz(category, difficulty, settings.default_quiz_length)
    await call.answer()
    await state.update_data(quiz=quiz.to_dict(), current_index=0)
    await state.set_state(QuizState.in_progress)
    await send_question(call.message, quiz, 0)


async def send_question(message: Message, quiz: Quiz, index: int):
    await message.edit_text(
        format_question(quiz, index),
        reply_markup=get_quiz_options_keyboard(index, quiz.questions[index].options),
        parse_mode="Markdown",
    )


@router.callback_query(QuizState.in_progress, F.data.startswith("quiz_answer_"))
async def quiz_answer_handler(call: CallbackQuery, state: FSMContext, progress_service: ProgressService):
    data = await state.get_data()
    quiz_data = data.get("quiz")
    current_index = data.get("current_index", 0)
    if not quiz_data:
        await call.answer("Quiz session expired.", show_alert=True)
        await state.clear()
        return

    parts = call.data.split("_")
    try:
        q_idx = int(parts[2])
        opt_idx = int(parts[3])
    except (IndexError, ValueError):
        await call.answer("Error!", show_alert=True)
        return

    if q_idx != current_index:
        await call.answer("That question is already answered.", show_alert=True)
        return

    quiz = Quiz.from_dict(quiz_data)
    try:
        is_correct = QuizService.answer(quiz, q_idx, opt_idx)
    except (IndexError, ValueError):
        await call.answer("Error!", show_alert=True)
        return

    question = quiz.questions[q_idx]
    if is_correct:
        await call.answer("✅ Correct!", show_alert=False)
    else:
        correct = question.options[question.correct_answer]
        hint = f"\n\n{question.explanation}" if question.explanation else ""
        await call.answer(f"❌ Wrong! Correct answer: {correct}{hint}"[:200], show_alert=True)

    next_index = q_idx + 1
    if next_index < len(quiz.questions):
        await state.update_data(quiz=quiz.to_dict(), current_index=next_index)
        await send_question(call.message, quiz, next_index)
        return

    await state.clear()
    score = QuizService.score_answers(quiz)
    certificate = progress_service.submit_quiz(user_key(call.from_user), quiz, score)
    await call.message.edit_text(
        format_result(quiz, passed=certificate is not None),
        reply_markup=InlineKeyboardMarkup(inline_keyboard=[home_row()]),
        parse_mode="Markdown",
    )
