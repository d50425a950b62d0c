from __future__ import annotations
import asyncio
import json
import logging
import math
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol

from pydantic import ValidationError as PydanticValidationError

from . import kiu as kiu_scorer
from .errors import AssessmentGenerationFailed, LearnKIUError, ValidationError
from .schemas import Assessment, KIUResult, LearningUnit, Question

logger = logging.getLogger(__name__)

QUESTION_COUNT = 5
OPTION_COUNT = 4


class TextGenerator(Protocol):
	async def generate(
		self,
		prompt: str,
		*,
		system: Optional[str] = None,
		json_mode: bool = False,
		temperature: Optional[float] = None,
	) -> str: ...


@dataclass(frozen=True)
class LearningMetrics:
	word_count: int
	reading_time_minutes: int
	learning_time_hours: float
	cpd_points: int


def learning_metrics(text: str) -> LearningMetrics:
	"""Reading time and CPD points. The only place these numbers are computed."""
	words = kiu_scorer.word_count(text)
	minutes = math.ceil(words / kiu_scorer.WORDS_PER_MINUTE)
	hours = minutes / kiu_scorer.MINUTES_PER_LEARNING_HOUR
	return LearningMetrics(
		word_count=words,
		reading_time_minutes=minutes,
		learning_time_hours=hours,
		cpd_points=math.ceil(hours),
	)


ACCURACY_SYSTEM_PROMPT = (
	"You are an expert fact-checker. Analyze the provided text and determine its accuracy. "
	"Focus on identifying any factual errors, inconsistencies, or misleading information. "
	"Provide a brief assessment of the text's overall accuracy and reliability."
)


def learning_unit_system_prompt(result: KIUResult, metrics: LearningMetrics) -> str:
	return (
		"You are an expert in educational content analysis. Analyze the provided text and:\n"
		"1. Generate a concise, professional title\n"
		"2. Create a 2-3 line summary\n"
		f"3. The academic level has been determined as: {result.level.value}\n"
		f"4. Reading time has been calculated as: {metrics.reading_time_minutes} minutes\n"
		f"5. KIU has been calculated as: {result.graduated_score}\n"
		f"6. CPD points have been calculated as: {metrics.cpd_points}\n"
		"Echo the level, readingTime, kiu and cpdPoints values exactly as given; do not recalculate them.\n\n"
		"Return ONLY a JSON object:\n"
		"{\n"
		'  "title": "Professional, concise title",\n'
		'  "summary": "2-3 line summary",\n'
		f'  "level": "{result.level.value}",\n'
		f'  "readingTime": {metrics.reading_time_minutes},\n'
		f'  "kiu": {result.graduated_score},\n'
		f'  "cpdPoints": {metrics.cpd_points}\n'
		"}"
	)


QUESTIONS_SYSTEM_PROMPT = (
	f"You are an expert in creating educational assessments. Create {QUESTION_COUNT} multiple-choice questions "
	"based on the provided text. Each question should:\n"
	"1. Test understanding of key concepts\n"
	f"2. Have exactly {OPTION_COUNT} options\n"
	"3. Include only one correct answer\n"
	"4. Be challenging but fair\n"
	"5. Include a brief explanation for the correct answer\n\n"
	"Return ONLY a JSON object:\n"
	"{\n"
	'  "questions": [\n'
	"    {\n"
	'      "question": "Question text",\n'
	'      "options": ["Option 1", "Option 2", "Option 3", "Option 4"],\n'
	'      "correctAnswer": 0,\n'
	'      "explanation": "Why this answer is correct"\n'
	"    }\n"
	"  ]\n"
	"}"
)


def extract_json_object(text: str) -> Dict[str, Any]:
	try:
		data = json.loads(text)
	except (TypeError, ValueError):
		data = None
	if isinstance(data, dict):
		return data
	code_block = re.search(r"```(?:json)?\s*([\s\S]*?)\s*```", text or "")
	if code_block:
		try:
			data = json.loads(code_block.group(1))
		except ValueError:
			data = None
		if isinstance(data, dict):
			return data
	first = (text or "").find("{")
	last = (text or "").rfind("}")
	if first != -1 and last > first:
		try:
			data = json.loads(text[first : last + 1])
		except ValueError:
			data = None
		if isinstance(data, dict):
			return data
	raise AssessmentGenerationFailed("Generation service did not return valid JSON")


def parse_learning_unit(raw: str, result: KIUResult, metrics: LearningMetrics) -> LearningUnit:
	data = extract_json_object(raw)
	title = data.get("title")
	summary = data.get("summary")
	if not isinstance(title, str) or not title.strip() or not isinstance(summary, str) or not summary.strip():
		raise AssessmentGenerationFailed("Learning unit is missing a title or summary")
	echoed = (data.get("readingTime"), data.get("kiu"), data.get("cpdPoints"))
	expected = (metrics.reading_time_minutes, result.graduated_score, metrics.cpd_points)
	if echoed != expected:
		logger.warning("Generation service altered learning unit metrics %s, keeping %s", echoed, expected)
	return LearningUnit(
		title=title.strip(),
		summary=summary.strip(),
		level=result.level,
		reading_time=metrics.reading_time_minutes,
		kiu=result.graduated_score,
		cpd_points=metrics.cpd_points,
	)


def parse_questions(raw: str) -> List[Question]:
	data = extract_json_object(raw)
	items = data.get("questions")
	if not isinstance(items, list) or len(items) != QUESTION_COUNT:
		raise AssessmentGenerationFailed(f"Expected exactly {QUESTION_COUNT} questions from the generation service")
	questions: List[Question] = []
	for i, item in enumerate(items):
		if not isinstance(item, dict):
			raise AssessmentGenerationFailed(f"Invalid question format for question {i + 1}")
		options = item.get("options")
		correct = item.get("correctAnswer")
		# bool is an int subclass; reject it explicitly
		if not isinstance(options, list) or len(options) != OPTION_COUNT or isinstance(correct, bool) or not isinstance(correct, int):
			raise AssessmentGenerationFailed(f"Invalid question format for question {i + 1}")
		try:
			questions.append(Question(
				question=str(item.get("question", "")).strip(),
				options=[str(o).strip() for o in options],
				correct_answer=correct,
				explanation=str(item["explanation"]).strip() if item.get("explanation") else None,
			))
		except PydanticValidationError as err:
			raise AssessmentGenerationFailed(f"Invalid question format for question {i + 1}") from err
		if not questions[-1].question:
			raise AssessmentGenerationFailed(f"Question {i + 1} has no text")
	return questions


class AssessmentPipeline:
	"""text -> (learning unit, accuracy check, quiz) -> Assessment."""

	def __init__(self, generator: TextGenerator) -> None:
		self.generator = generator

	async def _learning_unit(self, text: str, result: KIUResult, metrics: LearningMetrics) -> LearningUnit:
		raw = await self.generator.generate(text, system=learning_unit_system_prompt(result, metrics), json_mode=True)
		return parse_learning_unit(raw, result, metrics)

	async def _accuracy(self, text: str) -> str:
		raw = await self.generator.generate(text, system=ACCURACY_SYSTEM_PROMPT)
		return (raw or "").strip()

	async def _questions(self, text: str) -> List[Question]:
		raw = await self.generator.generate(text, system=QUESTIONS_SYSTEM_PROMPT, json_mode=True)
		return parse_questions(raw)

	async def generate_assessment(self, text: str) -> Assessment:
		if not text or not text.strip():
			raise ValidationError("Text is required to generate an assessment")
		result = kiu_scorer.score(text)
		metrics = learning_metrics(text)
		try:
			learning_unit, accuracy, questions = await asyncio.gather(
				self._learning_unit(text, result, metrics),
				self._accuracy(text),
				self._questions(text),
			)
		except AssessmentGenerationFailed:
			raise
		except LearnKIUError as err:
			logger.error("Assessment generation failed: %s", err.message)
			raise AssessmentGenerationFailed() from err
		except Exception as err:
			logger.exception("Unexpected error while generating assessment")
			raise AssessmentGenerationFailed() from err
		return Assessment(
			questions=questions,
			original_text=text,
			accuracy=accuracy,
			learning_unit=learning_unit,
		)
