import asyncio
import json

import pytest

from learnkiu import kiu
from learnkiu.assessment import (
    AssessmentPipeline,
    extract_json_object,
    learning_metrics,
)
from learnkiu.errors import AssessmentGenerationFailed, ExternalServiceError, ValidationError

TEXT = (
    "Photosynthesis is the process by which green plants convert light energy into chemical energy. "
    "It takes place in the chloroplasts. "
) * 30


def _run(coro):
    return asyncio.run(coro)


def test_learning_metrics_round_up() -> None:
    m = learning_metrics(" ".join(["word"] * 450))
    assert (m.word_count, m.reading_time_minutes, m.learning_time_hours, m.cpd_points) == (450, 3, 0.25, 1)

    m = learning_metrics(" ".join(["word"] * 2401))
    assert m.reading_time_minutes == 13
    assert m.cpd_points == 2


def test_assessment_is_assembled_from_three_requests(make_generator) -> None:
    generator = make_generator()
    assessment = _run(AssessmentPipeline(generator).generate_assessment(TEXT))

    assert len(generator.calls) == 3
    assert all(call["prompt"] == TEXT for call in generator.calls)
    assert sorted(call["json_mode"] for call in generator.calls) == [False, True, True]

    assert assessment.original_text == TEXT
    assert assessment.accuracy == "The text is broadly accurate."
    assert len(assessment.questions) == 5
    assert all(len(q.options) == 4 for q in assessment.questions)
    assert assessment.questions[3].correct_answer == 3


def test_learning_unit_numbers_come_from_local_computation(make_generator) -> None:
    assessment = _run(AssessmentPipeline(make_generator()).generate_assessment(TEXT))
    unit = assessment.learning_unit
    expected_kiu = kiu.score(TEXT)
    metrics = learning_metrics(TEXT)

    assert unit.title == "Photosynthesis Basics"
    assert unit.level == expected_kiu.level
    assert unit.kiu == expected_kiu.graduated_score
    assert unit.reading_time == metrics.reading_time_minutes
    assert unit.cpd_points == metrics.cpd_points


def test_learning_unit_prompt_carries_fixed_inputs(make_generator) -> None:
    generator = make_generator()
    _run(AssessmentPipeline(generator).generate_assessment(TEXT))
    system = next(c["system"] for c in generator.calls if "educational content analysis" in c["system"])
    metrics = learning_metrics(TEXT)

    assert f"Reading time has been calculated as: {metrics.reading_time_minutes} minutes" in system
    assert f"CPD points have been calculated as: {metrics.cpd_points}" in system
    assert kiu.score(TEXT).level.value in system


def test_requests_run_concurrently() -> None:
    started = 0
    all_started = asyncio.Event()

    class WaitingGenerator:
        async def generate(self, prompt, *, system=None, json_mode=False, temperature=None):
            nonlocal started
            started += 1
            if started == 3:
                all_started.set()
            # Sequential execution would never reach three in-flight calls
            await asyncio.wait_for(all_started.wait(), timeout=2)
            if "fact-checker" in system:
                return "ok"
            if "educational content analysis" in system:
                return json.dumps({"title": "T", "summary": "S"})
            return json.dumps({"questions": [
                {"question": "Q?", "options": ["a", "b", "c", "d"], "correctAnswer": 0} for _ in range(5)
            ]})

    assessment = _run(AssessmentPipeline(WaitingGenerator()).generate_assessment(TEXT))
    assert assessment.accuracy == "ok"


def test_wrong_number_of_questions_fails(make_generator, questions_payload) -> None:
    generator = make_generator(questions=json.dumps({"questions": questions_payload(4)}))
    with pytest.raises(AssessmentGenerationFailed):
        _run(AssessmentPipeline(generator).generate_assessment(TEXT))


def test_question_with_three_options_fails(make_generator, questions_payload) -> None:
    items = questions_payload()
    items[2]["options"] = ["A", "B", "C"]
    generator = make_generator(questions=json.dumps({"questions": items}))
    with pytest.raises(AssessmentGenerationFailed):
        _run(AssessmentPipeline(generator).generate_assessment(TEXT))


def test_out_of_range_correct_answer_fails(make_generator, questions_payload) -> None:
    items = questions_payload()
    items[0]["correctAnswer"] = 4
    generator = make_generator(questions=json.dumps({"questions": items}))
    with pytest.raises(AssessmentGenerationFailed):
        _run(AssessmentPipeline(generator).generate_assessment(TEXT))


def test_unparseable_learning_unit_fails(make_generator) -> None:
    generator = make_generator(learning_unit="Sorry, I cannot help with that.")
    with pytest.raises(AssessmentGenerationFailed):
        _run(AssessmentPipeline(generator).generate_assessment(TEXT))


def test_external_failure_becomes_generation_failure(make_generator) -> None:
    generator = make_generator(error=ExternalServiceError("boom"))
    with pytest.raises(AssessmentGenerationFailed) as exc_info:
        _run(AssessmentPipeline(generator).generate_assessment(TEXT))
    assert exc_info.value.message == "Failed to generate assessment. Please try again."


def test_empty_text_is_rejected(make_generator) -> None:
    generator = make_generator()
    with pytest.raises(ValidationError):
        _run(AssessmentPipeline(generator).generate_assessment("   "))
    assert generator.calls == []


def test_extract_json_object_accepts_fenced_and_wrapped_replies() -> None:
    assert extract_json_object('```json\n{"a": 1}\n```') == {"a": 1}
    assert extract_json_object('Here you go: {"a": 2} Enjoy!') == {"a": 2}
    with pytest.raises(AssessmentGenerationFailed):
        extract_json_object("[1, 2, 3]")


def test_unexpected_generator_error_becomes_generation_failure() -> None:
    class BrokenGenerator:
        async def generate(self, prompt, *, system=None, json_mode=False, temperature=None):
            raise RuntimeError("bad base url")

    with pytest.raises(AssessmentGenerationFailed) as exc_info:
        _run(AssessmentPipeline(BrokenGenerator()).generate_assessment(TEXT))
    assert isinstance(exc_info.value.__cause__, RuntimeError)
