import dataclasses
import datetime
import json

import pytest

import database.connection as connection
import database.repositories.catalog_repository as catalog_repository
import database.repositories.progress_repository as progress_repository
from core.config import settings
from core.models import ActivityType, Challenge, ChallengeType, Difficulty, SportActivity
from database import create_table, kv_get, kv_set, list_progress_user_ids, load_progress, save_progress
from database.repositories.quiz_bank_repository import load_quiz_bank, parse_quiz_bank
from handlers.adventures import describe_filter, load_adventure_filter, save_adventure_filter

NOW = datetime.datetime(2026, 3, 10, 12, 0)


@pytest.fixture
def temp_db(tmp_path, monkeypatch):
    test_settings = dataclasses.replace(settings, db_path=str(tmp_path / "test.db"))
    monkeypatch.setattr(connection, "settings", test_settings)
    monkeypatch.setattr(progress_repository, "settings", test_settings)
    create_table()
    return test_settings


def test_load_missing_progress_returns_seeded_default(temp_db):
    progress = load_progress("1", now=NOW)
    assert progress.total_points == 0
    assert len(progress.goals) == 3
    assert len(progress.milestones) == 5


def test_save_then_load_preserves_progress(temp_db):
    progress = load_progress("7", now=NOW)
    challenge = Challenge.create("Ten km", "", ChallengeType.DISTANCE, 10, duration_days=7, reward=100, now=NOW)
    progress.join_challenge(challenge, "7")
    activity = SportActivity(
        type=ActivityType.RUNNING,
        start_time=NOW,
        duration=1800,
        calories=250,
        difficulty=Difficulty.INTERMEDIATE,
        distance=5.2,
    )
    progress.record_activity(activity, "7", now=NOW)
    progress.mark_adventure_completed("adv-1", Difficulty.EXPERT)

    assert save_progress("7", progress)
    restored = load_progress("7", now=NOW)

    assert restored == progress
    assert restored.activities[0].distance == 5.2
    assert restored.active_challenges[0].progress_for("7") == 5.2
    assert restored.goals[0].id == progress.goals[0].id


def test_progress_is_stored_under_user_key(temp_db):
    save_progress("99", load_progress("99", now=NOW))
    raw = kv_get("userProgress:99")
    assert raw is not None
    assert json.loads(raw)["total_points"] == 0
    assert list_progress_user_ids() == ["99"]


def test_corrupt_document_falls_back_to_default(temp_db):
    kv_set("userProgress:5", "{not json")
    progress = load_progress("5", now=NOW)
    assert progress.total_points == 0
    assert len(progress.goals) == 3

    kv_set("userProgress:5", json.dumps({"activities": [{"type": "Skydiving"}]}))
    assert load_progress("5", now=NOW).activities == []


def test_load_without_table_returns_default(tmp_path, monkeypatch):
    test_settings = dataclasses.replace(settings, db_path=str(tmp_path / "empty.db"))
    monkeypatch.setattr(connection, "settings", test_settings)
    monkeypatch.setattr(progress_repository, "settings", test_settings)
    progress = load_progress("3", now=NOW)
    assert progress.level == 1
    assert not save_progress("3", progress)


def test_parse_quiz_bank_drops_malformed_questions():
    bank = parse_quiz_bank({
        "categories": {
            "firstAid": {
                "name": "First Aid",
                "questions": [
                    {"text": "Good?", "options": ["yes", "no"], "correctAnswer": 0},
                    {"text": "Out of range", "options": ["a", "b"], "correctAnswer": 5},
                    {"text": "", "options": ["a", "b"], "correctAnswer": 0},
                    {"text": "One option", "options": ["a"], "correctAnswer": 0},
                ],
            },
            "broken": "not a dict",
        }
    })
    assert list(bank) == ["firstAid"]
    assert [q["text"] for q in bank["firstAid"]["questions"]] == ["Good?"]


def test_parse_quiz_bank_rejects_wrong_shape():
    assert parse_quiz_bank([]) == {}
    assert parse_quiz_bank({"questions": []}) == {}


def test_bundled_quiz_bank_has_every_category():
    bank = load_quiz_bank(settings.quiz_data_path)
    assert len(bank) == 8
    assert len(bank["navigationSkills"]["questions"]) >= 10


def test_missing_quiz_bank_file_is_empty(tmp_path):
    assert load_quiz_bank(str(tmp_path / "nope.json")) == {}


def test_bundled_catalog_loads():
    catalog_repository.clear_catalog_cache()
    adventures = catalog_repository.get_adventures()
    assert len(adventures) == 4
    course = catalog_repository.find_course_for_lesson("lesson-shelter-basics")
    assert course is not None and course.id == "course-survival"
    challenge = catalog_repository.get_challenge_template("challenge-spring-marathon", now=NOW)
    assert challenge.target == 42
    assert challenge.end_date - challenge.start_date == datetime.timedelta(days=30)


def test_filter_adventures_by_category_difficulty_and_text():
    catalog_repository.clear_catalog_cache()
    assert catalog_repository.get_adventure_categories() == ["Climbing", "Hiking"]

    hiking = catalog_repository.filter_adventures(category="Hiking")
    assert [a.id for a in hiking] == ["adv-san-jacinto", "adv-canyon-loop", "adv-ridge-traverse"]

    easy_hikes = catalog_repository.filter_adventures(category="Hiking", difficulty=Difficulty.BEGINNER)
    assert [a.id for a in easy_hikes] == ["adv-canyon-loop"]

    # matches the title of one and the description of another
    desert = catalog_repository.filter_adventures(query="  DESERT ")
    assert [a.id for a in desert] == ["adv-desert-climb", "adv-canyon-loop"]

    assert catalog_repository.filter_adventures(category="Climbing", query="ridge") == []
    assert len(catalog_repository.filter_adventures(query="   ")) == 4


def test_adventure_filter_is_remembered_per_user(temp_db):
    assert load_adventure_filter(5) == {"category": None, "difficulty": None, "query": None}
    save_adventure_filter(5, "Hiking", Difficulty.EXPERT, "ridge")
    stored = load_adventure_filter(5)
    assert stored == {"category": "Hiking", "difficulty": Difficulty.EXPERT, "query": "ridge"}
    assert describe_filter(stored) == 'Hiking · Expert · "ridge"'
    assert load_adventure_filter(6)["category"] is None

    kv_set("ui:5:adventure_filter", "not json")
    assert load_adventure_filter(5)["difficulty"] is None
