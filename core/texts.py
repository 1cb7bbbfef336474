# Global UI Strings and Constants

MAIN_MENU_TEXT = """
🏔 **TrailMate**

Discover adventures, learn in the Academy and track your outdoor activities.

🚀 **What's next?**
• Log today's activity to keep your streak
• Finish a lesson or pass a quiz
• Join a challenge and climb the leaderboard
"""

HELP_TEXT = (
    "ℹ️ **Help**\n\n"
    "Use the menu buttons below.\n\n"
    "Log an activity manually:\n"
    "`/log <type> <minutes> [km] [difficulty]`\n"
    "Example: `/log hiking 90 7.5 advanced`\n\n"
    "Search adventures: `/find <words>`\n\n"
    "Types: hiking, climbing, biking, swimming, running, yoga\n"
    "Difficulty: beginner, intermediate, advanced, expert"
)

# Keyboard Labels
BTN_ADVENTURES = "🧭 Adventures"
BTN_ACADEMY = "🎓 Academy"
BTN_QUIZ = "🧠 Quizzes"
BTN_TRACKER = "🏃 Tracker"
BTN_CHALLENGES = "🏆 Challenges"
BTN_PROFILE = "👤 Profile"
BTN_HOME = "🏠 Main menu"
BTN_BACK = "🔙 Back"

MAIN_MENU_BUTTONS = [
    BTN_ADVENTURES,
    BTN_ACADEMY,
    BTN_QUIZ,
    BTN_TRACKER,
    BTN_CHALLENGES,
    BTN_PROFILE,
    BTN_HOME,
]

GRADE_EMOJI = {
    "A": "🥇",
    "B": "🥈",
    "C": "🥉",
    "D": "📜",
    "F": "📄",
}

STREAK_REMINDER_TEXT = (
    "🔥 Your streak is at **{streak}** day(s).\n"
    "Log an activity today to keep it going!"
)
