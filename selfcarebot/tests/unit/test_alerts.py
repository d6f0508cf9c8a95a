# selfcarebot/tests/unit/test_alerts.py
from selfcarebot.core.alerts import find_crisis_keyword

KEYWORDS = ["не хочу жить", "суицид"]


def test_case_insensitive_substring():
    assert find_crisis_keyword("Иногда я НЕ ХОЧУ ЖИТЬ...", KEYWORDS) == "не хочу жить"


def test_first_configured_keyword_wins():
    assert find_crisis_keyword("суицид, не хочу жить", KEYWORDS) == "не хочу жить"


def test_no_match():
    assert find_crisis_keyword("Сегодня был хороший день", KEYWORDS) is None
    assert find_crisis_keyword("", KEYWORDS) is None


def test_blank_keywords_are_ignored():
    assert find_crisis_keyword("что угодно", ["  ", ""]) is None
