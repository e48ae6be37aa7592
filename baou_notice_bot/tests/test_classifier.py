from datetime import datetime, timezone

import pytest

from baou_notice_bot.classifier import (
    calculate_priority,
    categorize,
    classify,
    detect_language,
    detect_urgency,
    score_priority,
)
from baou_notice_bot.models import Category, Notice


def test_exam_checked_before_schedule():
    result = classify("Final exam schedule announced")

    assert result.category is Category.EXAM
    assert result.is_urgent is False
    assert result.priority == 0


def test_assignment_checked_before_deadline():
    result = classify("URGENT: last date for assignment submission is tomorrow")

    assert result.is_urgent is True
    assert result.category is Category.ASSIGNMENT
    assert result.priority == 2


def test_urgency_matches_substrings():
    # "due" hides inside "residue", partial matches are accepted
    assert detect_urgency("Residue of the library fees") is True
    assert detect_urgency("Welcome to the new semester") is False


def test_urgency_is_case_insensitive_and_multilingual():
    assert detect_urgency("MANDATORY attendance") is True
    assert detect_urgency("અગત્યની સૂચના") is True


@pytest.mark.parametrize(
    "text, expected",
    [
        ("Assessment results", Category.EXAM),
        ("Homework for block 2", Category.ASSIGNMENT),
        ("Revised timetable", Category.SCHEDULE),
        ("Circular regarding convocation", Category.ANNOUNCEMENT),
        ("Last date to pay fees", Category.DEADLINE),
        ("પરીક્ષા ફોર્મ", Category.EXAM),
        ("Admission open for MBA", Category.OTHER),
    ],
)
def test_categorize(text, expected):
    assert categorize(text) is expected


def test_detect_language():
    assert detect_language("સ્વાધ્યાય જમા કરાવવા બાબત") == "gujarati"
    assert detect_language("Assignment submission") == "english"
    assert detect_language("Notice: પરીક્ષા") == "gujarati"


def test_classification_depends_only_on_text():
    text = "Important notice about the exam"
    first = classify(text)
    second = classify(text)

    assert (first.is_urgent, first.category) == (second.is_urgent, second.category)


def test_priority_weights_and_cap():
    assert score_priority("x", is_urgent=True, is_new=False, category=Category.OTHER) == 2
    assert score_priority("x", is_urgent=False, is_new=True, category=Category.OTHER) == 1
    assert score_priority("x", is_urgent=False, is_new=False, category=Category.DEADLINE) == 1
    assert score_priority("IMPORTANT", is_urgent=False, is_new=False, category=Category.OTHER) == 1
    assert (
        score_priority("important", is_urgent=True, is_new=True, category=Category.DEADLINE)
        == 5
    )


def test_priority_is_monotonic_and_bounded():
    for text in ("plain", "important"):
        for category in (Category.OTHER, Category.DEADLINE):
            for is_new in (False, True):
                low = score_priority(text, is_urgent=False, is_new=is_new, category=category)
                high = score_priority(text, is_urgent=True, is_new=is_new, category=category)
                assert 0 <= low <= high <= 5
            for is_urgent in (False, True):
                low = score_priority(text, is_urgent=is_urgent, is_new=False, category=category)
                high = score_priority(text, is_urgent=is_urgent, is_new=True, category=category)
                assert low <= high


def test_calculate_priority_uses_notice_fields():
    notice = Notice(
        id="abc",
        text="Important: deadline extended",
        link=None,
        is_new=True,
        is_urgent=True,
        category=Category.DEADLINE,
        timestamp=datetime(2024, 5, 1, tzinfo=timezone.utc),
    )

    assert calculate_priority(notice) == 5
