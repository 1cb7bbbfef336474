from aiogram import Router, F
from aiogram.types import Message, CallbackQuery, InlineKeyboardMarkup, InlineKeyboardButton

from core.models import Certificate, Course, Lesson
from core.progress import UserProgress
from core.texts import BTN_ACADEMY, BTN_BACK, GRADE_EMOJI
from database.repositories.catalog_repository import find_course_for_lesson, get_course, get_courses
from handlers.common import user_key
from keyboards.builders import home_row
from services.progress_service import ProgressService
from utils.ui_utils import _get_progress_bar, _md_escape, safe_delete, send_single_ui_message

router = Router()


def _academy_markup(courses: list[Course], progress: UserProgress) -> InlineKeyboardMarkup:
    rows = []
    for course in courses:
        pct = int(progress.course_progress(course) * 100)
        mark = "🎓 " if progress.has_course_certificate(course.id) else ""
        rows.append([InlineKeyboardButton(text=f"{mark}{course.title} · {pct}%", callback_data=f"acd_course_{course.id}")])
    rows.append([InlineKeyboardButton(text="📜 My certificates", callback_data="acd_certs")])
    rows.append(home_row())
    return InlineKeyboardMarkup(inline_keyboard=rows)


def _academy_text(progress: UserProgress) -> str:
    return (
        "🎓 **Academy**\n\n"
        f"Lessons completed: {len(progress.completed_lessons)}\n"
        f"Courses completed: {progress.completed_courses_count}"
    )


def format_course(course: Course, progress: UserProgress) -> str:
    pct = progress.course_progress(course) * 100
    lines = [
        f"📘 **{_md_escape(course.title)}**",
        f"{course.difficulty.value} · {course.duration or '-'}",
    ]
    if course.instructor:
        lines.append(f"👨‍🏫 {_md_escape(course.instructor)}")
    if course.description:
        lines.append(f"\n{_md_escape(course.description)}")
    lines.append(f"\n{_get_progress_bar(pct)} {pct:.0f}%")
    for module in course.modules:
        lines.append(f"\n**{_md_escape(module.title)}**")
        for lesson in module.lessons:
            mark = "✅" if progress.is_lesson_completed(lesson.id) else "▫️"
            lines.append(f"{mark} {_md_escape(lesson.title)}")
    return "\n".join(lines)


def _course_markup(course: Course, progress: UserProgress) -> InlineKeyboardMarkup:
    rows = []
    for lesson in course.lessons:
        mark = "✅ " if progress.is_lesson_completed(lesson.id) else ""
        rows.append([InlineKeyboardButton(text=f"{mark}{lesson.title}", callback_data=f"acd_lesson_{lesson.id}")])
    rows.append([InlineKeyboardButton(text=BTN_BACK, callback_data="acd_list")])
    return InlineKeyboardMarkup(inline_keyboard=rows)


def format_lesson(lesson: Lesson) -> str:
    lines = [
        f"📖 **{_md_escape(lesson.title)}**",
        f"{lesson.type.value} · {lesson.duration // 60} min",
    ]
    if lesson.description:
        lines.append(f"\n_{_md_escape(lesson.description)}_")
    if lesson.content:
        lines.append(f"\n{_md_escape(lesson.content)}")
    return "\n".join(lines)


def _lesson_markup(lesson: Lesson, course: Course, is_completed: bool) -> InlineKeyboardMarkup:
    rows = []
    if not is_completed:
        rows.append([InlineKeyboardButton(text="✅ Mark as completed", callback_data=f"acd_done_{lesson.id}")])
    rows.append([InlineKeyboardButton(text=BTN_BACK, callback_data=f"acd_course_{course.id}")])
    return InlineKeyboardMarkup(inline_keyboard=rows)


def format_certificate(certificate: Certificate) -> str:
    emoji = GRADE_EMOJI.get(certificate.grade, "📜")
    title = certificate.course_title or "Certificate"
    kind = "Quiz" if certificate.related_to_quiz else "Course"
    line = f"{emoji} **{_md_escape(title)}** · {kind} · grade {certificate.grade}"
    if certificate.score is not None and certificate.total_questions:
        line += f" ({certificate.score}/{certificate.total_questions})"
    return f"{line}\n   {certificate.issue_date:%d.%m.%Y}"


@router.message(F.text == BTN_ACADEMY)
async def academy_handler(message: Message, progress_service: ProgressService):
    await safe_delete(message)
    if not message.from_user:
        return
    progress = progress_service.get(user_key(message.from_user))
    await send_single_ui_message(message, _academy_text(progress), reply_markup=_academy_markup(get_courses(), progress))


@router.callback_query(F.data == "acd_list")
async def academy_list_callback(call: CallbackQuery, progress_service: ProgressService):
    await call.answer()
    progress = progress_service.get(user_key(call.from_user))
    await call.message.edit_text(
        _academy_text(progress),
        reply_markup=_academy_markup(get_courses(), progress),
        parse_mode="Markdown",
    )


@router.callback_query(F.data.startswith("acd_course_"))
async def course_detail_callback(call: CallbackQuery, progress_service: ProgressService):
    course = get_course(call.data.removeprefix("acd_course_"))
    if not course:
        await call.answer("Course not found.", show_alert=True)
        return
    await call.answer()
    progress = progress_service.get(user_key(call.from_user))
    await call.message.edit_text(
        format_course(course, progress),
        reply_markup=_course_markup(course, progress),
        parse_mode="Markdown",
    )


@router.callback_query(F.data.startswith("acd_lesson_"))
async def lesson_detail_callback(call: CallbackQuery, progress_service: ProgressService):
    lesson_id = call.data.removeprefix("acd_lesson_")
    course = find_course_for_lesson(lesson_id)
    lesson = course.find_lesson(lesson_id) if course else None
    if not lesson:
        await call.answer("Lesson not found.", show_alert=True)
        return
    await call.answer()
    progress = progress_service.get(user_key(call.from_user))
    await call.message.edit_text(
        format_lesson(lesson),
        reply_markup=_lesson_markup(lesson, course, progress.is_lesson_completed(lesson.id)),
        parse_mode="Markdown",
    )


@router.callback_query(F.data.startswith("acd_done_"))
async def lesson_complete_callback(call: CallbackQuery, progress_service: ProgressService):
    lesson_id = call.data.removeprefix("acd_done_")
    course = find_course_for_lesson(lesson_id)
    if not course:
        await call.answer("Lesson not found.", show_alert=True)
        return
    user_id = user_key(call.from_user)
    points, certificate = progress_service.mark_lesson_completed(user_id, lesson_id, course)

    if certificate:
        await call.answer(
            f"🎓 Course completed! Grade {certificate.grade}. +{points} pts for the lesson",
            show_alert=True,
        )
    else:
        await call.answer(f"✅ Lesson completed! +{points} pts" if points else "Already completed")

    progress = progress_service.get(user_id)
    await call.message.edit_text(
        format_course(course, progress),
        reply_markup=_course_markup(course, progress),
        parse_mode="Markdown",
    )


@router.callback_query(F.data == "acd_certs")
async def certificates_callback(call: CallbackQuery, progress_service: ProgressService):
    await call.answer()
    progress = progress_service.get(user_key(call.from_user))
    if progress.certificates:
        body = "\n".join(format_certificate(c) for c in reversed(progress.certificates))
    else:
        body = "No certificates yet. Finish a course or pass a quiz to earn one."
    await call.message.edit_text(
        f"📜 **Certificates**\n\n{body}",
        reply_markup=InlineKeyboardMarkup(inline_keyboard=[[InlineKeyboardButton(text=BTN_BACK, callback_data="acd_list")]]),
        parse_mode="Markdown",
    )
