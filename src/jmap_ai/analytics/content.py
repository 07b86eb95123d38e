"""Keyword heuristics over message subjects."""

from __future__ import annotations

import re
from collections import Counter
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from jmap_ai.core.models import KeywordCount, Message, PatternCount

_STOP_WORDS = frozenset(
    {"from", "with", "your", "this", "that", "have", "will", "been", "were"}
)
_NON_WORD = re.compile(r"[^\w]")
_MIN_WORD_LENGTH = 4
TOP_KEYWORD_LIMIT = 10


@dataclass(frozen=True)
class _SubjectRule:
    label: str
    needles: tuple[str, ...]

    def matches(self, subject: str) -> bool:
        return any(needle in subject for needle in self.needles)


SUBJECT_RULES: tuple[_SubjectRule, ...] = (
    _SubjectRule("Replies (Re:)", ("re:",)),
    _SubjectRule("Forwards (Fwd:)", ("fwd:", "fw:")),
    _SubjectRule("Newsletters", ("newsletter", "unsubscribe")),
    _SubjectRule("Financial", ("invoice", "payment", "bill")),
    _SubjectRule("Meetings/Calendar", ("meeting", "calendar")),
)


def extract_keywords(subject: str) -> list[str]:
    """Return case-folded subject words worth counting."""
    words: list[str] = []
    for raw in subject.split():
        word = _NON_WORD.sub("", raw).casefold()
        if len(word) >= _MIN_WORD_LENGTH and word not in _STOP_WORDS:
            words.append(word)
    return words


def top_keywords(
    messages: Iterable[Message], limit: int = TOP_KEYWORD_LIMIT
) -> tuple[KeywordCount, ...]:
    """Most frequent subject keywords; ties keep first-seen order."""
    counter: Counter[str] = Counter()
    for message in messages:
        if message.subject:
            counter.update(extract_keywords(message.subject))
    return tuple(
        KeywordCount(word=word, frequency=frequency)
        for word, frequency in counter.most_common(limit)
    )


def subject_patterns(
    messages: Iterable[Message], rules: Sequence[_SubjectRule] = SUBJECT_RULES
) -> tuple[PatternCount, ...]:
    """Count subjects matching each rule, most common first.

    A subject may match several rules. Rules with no match are omitted.
    """
    counts = {rule.label: 0 for rule in rules}
    for message in messages:
        if not message.subject:
            continue
        subject = message.subject.lower()
        for rule in rules:
            if rule.matches(subject):
                counts[rule.label] += 1
    ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
    return tuple(
        PatternCount(pattern=label, count=count) for label, count in ranked if count
    )


__all__ = [
    "SUBJECT_RULES",
    "TOP_KEYWORD_LIMIT",
    "extract_keywords",
    "subject_patterns",
    "top_keywords",
]
