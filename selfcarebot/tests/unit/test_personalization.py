# selfcarebot/tests/unit/test_personalization.py
import pytest

from selfcarebot.core.personalization import (
    Mood,
    PersonalizationType,
    QuizAnswers,
    SelfCareHabit,
    SelfCriticism,
    parse_answer,
    quiz_token,
    recommend,
)


@pytest.mark.parametrize(
    "mood, critic, habit, expected",
    [
        (Mood.BAD, SelfCriticism.OFTEN, SelfCareHabit.REGULAR, PersonalizationType.CRITICAL),
        (Mood.BAD, SelfCriticism.RARELY, SelfCareHabit.NONE, PersonalizationType.CRITICAL),
        (Mood.TIRED, SelfCriticism.OFTEN, SelfCareHabit.TRIED, PersonalizationType.TRYING),
        (Mood.OK, SelfCriticism.SOMETIMES, SelfCareHabit.NONE, PersonalizationType.NORMAL),
        (Mood.TIRED, SelfCriticism.OFTEN, SelfCareHabit.REGULAR, PersonalizationType.NORMAL),
        (Mood.TIRED, SelfCriticism.OFTEN, SelfCareHabit.NONE, PersonalizationType.UNSURE),
        (Mood.OK, SelfCriticism.OFTEN, SelfCareHabit.NONE, PersonalizationType.UNSURE),
    ],
)
def test_rule_table(mood, critic, habit, expected):
    assert recommend(QuizAnswers(mood, critic, habit)) is expected


def test_first_matching_rule_wins():
    answers = QuizAnswers(Mood.OK, SelfCriticism.RARELY, SelfCareHabit.TRIED)
    rules = (
        (lambda a: a.habit is SelfCareHabit.TRIED, PersonalizationType.CRITICAL),
        (lambda a: True, PersonalizationType.NORMAL),
    )
    assert recommend(answers, rules) is PersonalizationType.CRITICAL


def test_empty_rule_table_falls_back_to_unsure():
    answers = QuizAnswers(Mood.OK, SelfCriticism.RARELY, SelfCareHabit.REGULAR)
    assert recommend(answers, ()) is PersonalizationType.UNSURE


def test_parse_answer():
    assert parse_answer(1, "bad") is Mood.BAD
    assert parse_answer(2, "rarely") is SelfCriticism.RARELY
    assert parse_answer(3, "tried") is SelfCareHabit.TRIED
    assert parse_answer(1, "often") is None
    assert parse_answer(0, "bad") is None
    assert parse_answer(4, "bad") is None


def test_quiz_token():
    assert quiz_token(2, SelfCriticism.OFTEN) == "quiz_2_often"
