from __future__ import annotations
from dataclasses import dataclass
from typing import Optional, Sequence

from .errors import ValidationError
from .kiu import round_half_up
from .schemas import Assessment

# Hard cutoff for certificate eligibility; intentionally not configurable
CERTIFICATE_THRESHOLD = 80


@dataclass(frozen=True)
class GradeResult:
	correct: int
	total: int
	percentage: int

	@property
	def eligible(self) -> bool:
		return is_certificate_eligible(self.percentage)


def percentage(correct: int, total: int) -> int:
	if total <= 0:
		raise ValidationError("Cannot grade an assessment without questions")
	return int(round_half_up(100 * correct / total))


def grade_answers(correct_keys: Sequence[int], selected: Sequence[Optional[int]]) -> GradeResult:
	if len(selected) != len(correct_keys):
		raise ValidationError(f"Expected {len(correct_keys)} answers, got {len(selected)}")
	correct = sum(1 for key, choice in zip(correct_keys, selected) if choice is not None and choice == key)
	return GradeResult(correct=correct, total=len(correct_keys), percentage=percentage(correct, len(correct_keys)))


def grade(assessment: Assessment, selected: Sequence[Optional[int]]) -> int:
	return grade_answers([q.correct_answer for q in assessment.questions], selected).percentage


def is_certificate_eligible(pct: int) -> bool:
	return pct >= CERTIFICATE_THRESHOLD
