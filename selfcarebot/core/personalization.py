# selfcarebot/core/personalization.py
"""
Three-question personalization quiz.

Answers are enumerated per question; the recommendation is chosen by an
ordered rule table (first match wins, the last rule always matches).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Union


class Mood(str, Enum):
    BAD = "bad"
    TIRED = "tired"
    OK = "ok"


class SelfCriticism(str, Enum):
    OFTEN = "often"
    SOMETIMES = "sometimes"
    RARELY = "rarely"


class SelfCareHabit(str, Enum):
    NONE = "none"
    TRIED = "tried"
    REGULAR = "regular"


class PersonalizationType(str, Enum):
    CRITICAL = "critical"
    TRYING = "trying"
    NORMAL = "normal"
    UNSURE = "unsure"


Answer = Union[Mood, SelfCriticism, SelfCareHabit]

# Question order; index + 1 is the question number used in callback tokens
QUESTIONS: tuple[tuple[str, type[Enum]], ...] = (
    ("mood", Mood),
    ("critic", SelfCriticism),
    ("habit", SelfCareHabit),
)


@dataclass(frozen=True)
class QuizAnswers:
    mood: Mood
    critic: SelfCriticism
    habit: SelfCareHabit


Predicate = Callable[[QuizAnswers], bool]

RULES: tuple[tuple[Predicate, PersonalizationType], ...] = (
    (lambda a: a.mood is Mood.BAD and a.critic is SelfCriticism.OFTEN, PersonalizationType.CRITICAL),
    (lambda a: a.mood is Mood.BAD and a.habit is SelfCareHabit.NONE, PersonalizationType.CRITICAL),
    (lambda a: a.habit is SelfCareHabit.TRIED, PersonalizationType.TRYING),
    (lambda a: a.mood is Mood.OK and a.critic is not SelfCriticism.OFTEN, PersonalizationType.NORMAL),
    (lambda a: a.habit is SelfCareHabit.REGULAR, PersonalizationType.NORMAL),
    (lambda a: True, PersonalizationType.UNSURE),
)


def recommend(answers: QuizAnswers, rules=RULES) -> PersonalizationType:
    for predicate, result in rules:
        if predicate(answers):
            return result
    return PersonalizationType.UNSURE


def parse_answer(question: int, value: str) -> Optional[Answer]:
    """Map (1-based question number, raw value) to its enum, or None if invalid."""
    if not 1 <= question <= len(QUESTIONS):
        return None
    _, enum_cls = QUESTIONS[question - 1]
    try:
        return enum_cls(value)
    except ValueError:
        return None


def quiz_token(question: int, answer: Enum) -> str:
    return f"quiz_{question}_{answer.value}"
