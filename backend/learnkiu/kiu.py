"""Knowledge Impact Units (KIU) scoring.

A text is classified into an academic level from two readability signals
(average word length and average sentence length), and the level's hourly KIU
rate is multiplied by the time needed to learn the text. Reading speed is
200 words/minute and 12 minutes of reading counts as one learning hour.

Values produced here end up on issued certificates, so the arithmetic must stay
stable: same text, same result.
"""

from __future__ import annotations
import math
import re
from typing import List, Tuple

from .errors import ValidationError
from .schemas import KIULevel, KIUResult

WORDS_PER_MINUTE = 200
MINUTES_PER_LEARNING_HOUR = 12

# (avg word length >, avg sentence length >, level, KIUs per hour), checked top-down.
# The bands overlap, so order matters: the first match wins.
LEVEL_THRESHOLDS: List[Tuple[float, float, KIULevel, int]] = [
	(7, 25, KIULevel.PHD, 10),
	(6, 20, KIULevel.MASTERS, 7),
	(5, 15, KIULevel.UNDERGRADUATE, 5),
	(4, 12, KIULevel.HIGH_SCHOOL, 2),
]
DEFAULT_LEVEL = (KIULevel.MIDDLE_SCHOOL, 1)

_WHITESPACE_RE = re.compile(r"\s+")
_SENTENCE_END_RE = re.compile(r"[.!?]+")


def round_half_up(value: float, ndigits: int = 0) -> float:
	"""Round like ``Math.round`` does (halves go up), not banker's rounding."""
	factor = 10 ** ndigits
	return math.floor(value * factor + 0.5) / factor


def word_count(text: str) -> int:
	return len(_WHITESPACE_RE.split(text))


def sentence_count(text: str) -> int:
	return max(1, len(_SENTENCE_END_RE.split(text)))


def classify(avg_word_length: float, avg_sentence_length: float) -> Tuple[KIULevel, int]:
	for word_len, sentence_len, level, complexity in LEVEL_THRESHOLDS:
		if avg_word_length > word_len and avg_sentence_length > sentence_len:
			return level, complexity
	return DEFAULT_LEVEL


def learning_time_hours(words: int) -> float:
	return (words / WORDS_PER_MINUTE) / MINUTES_PER_LEARNING_HOUR


def score(text: str) -> KIUResult:
	if not text or not text.strip():
		raise ValidationError("Text is required to calculate KIU")
	words = word_count(text)
	avg_word_length = len(text) / words
	avg_sentence_length = words / sentence_count(text)
	level, complexity = classify(avg_word_length, avg_sentence_length)
	graduated = round_half_up(complexity * learning_time_hours(words), 2)
	return KIUResult(
		material_complexity=complexity,
		baseline_knowledge=0,
		graduated_score=graduated,
		level=level,
	)
