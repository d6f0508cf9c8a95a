# selfcarebot/tests/unit/test_course_catalog.py
import pytest

from selfcarebot.core.course import (
    SLOTS,
    CourseContentError,
    Slot,
    all_days,
    get_day_content,
    load_course,
)


@pytest.mark.parametrize("day", [0, 8, -1, 100, None, "1", 1.0, True])
def test_out_of_range_or_non_int_is_absent(day):
    assert get_day_content(day) is None


@pytest.mark.parametrize("day", range(1, 8))
def test_every_course_day_is_present_and_echoes_day(day):
    content = get_day_content(day)
    assert content is not None
    assert content.day == day
    for slot in SLOTS:
        assert content.message_for(slot).strip()


def test_lookup_is_stable():
    assert get_day_content(3) == get_day_content(3)
    assert get_day_content(3) is get_day_content(3)


def test_options_attach_to_evening_only():
    content = get_day_content(1)
    assert content.options
    assert content.options_for(Slot.EVENING) == content.options
    for slot in (Slot.MORNING, Slot.EXERCISE, Slot.PHRASE):
        assert content.options_for(slot) == ()


def test_option_tokens_name_day_and_evening_slot():
    for content in all_days():
        for opt in content.options:
            assert opt.token.startswith(f"day_{content.day}_evening_")
            assert opt.label


def test_all_days_lists_seven_unique_titles():
    days = all_days()
    assert [d.day for d in days] == list(range(1, 8))
    assert len({d.title for d in days}) == 7


def test_load_course_rejects_missing_day(tmp_path):
    path = tmp_path / "course.yaml"
    body = "\n".join(
        f"  - day: {d}\n    title: T{d}\n    morning: m\n    exercise: e\n    phrase: p\n    evening: ev"
        for d in range(1, 7)
    )
    path.write_text("days:\n" + body + "\n", encoding="utf-8")
    with pytest.raises(CourseContentError):
        load_course(path)


def test_load_course_rejects_empty_body(tmp_path):
    path = tmp_path / "course.yaml"
    body = "\n".join(
        f"  - day: {d}\n    title: T{d}\n    morning: m\n    exercise: e\n    phrase: p\n    evening: {'' if d == 4 else 'ev'}"
        for d in range(1, 8)
    )
    path.write_text("days:\n" + body + "\n", encoding="utf-8")
    with pytest.raises(CourseContentError):
        load_course(path)
