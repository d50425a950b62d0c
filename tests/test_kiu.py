import pytest

from learnkiu import kiu
from learnkiu.errors import ValidationError
from learnkiu.schemas import KIULevel


def _phd_text() -> str:
    # 80 sentences x 30 seven-letter words = 2400 words, avg word length ~8, avg sentence ~30
    sentence = " ".join(["abcdefg"] * 30) + "."
    return " ".join([sentence] * 80)


def test_phd_example_scores_ten() -> None:
    text = _phd_text()
    assert kiu.word_count(text) == 2400

    result = kiu.score(text)

    assert result.level == KIULevel.PHD
    assert result.level.value == "PhD Level"
    assert result.material_complexity == 10
    assert result.baseline_knowledge == 0
    assert kiu.learning_time_hours(2400) == 1.0
    assert result.graduated_score == 10.0


def test_average_word_length_of_exactly_seven_is_not_phd() -> None:
    # 29 six-letter words + 1 seven-letter word + 29 spaces = 210 chars / 30 words = 7.0
    text = " ".join(["abcdef"] * 29 + ["abcdefg"])
    assert len(text) / kiu.word_count(text) == 7.0

    result = kiu.score(text)

    assert result.level == KIULevel.MASTERS
    assert result.material_complexity == 7
    # 7 * (30 / 200 / 12) = 0.0875
    assert result.graduated_score == 0.09


def test_short_simple_text_is_middle_school() -> None:
    result = kiu.score("The cat sat.")
    assert result.level == KIULevel.MIDDLE_SCHOOL
    assert result.material_complexity == 1
    assert result.graduated_score == 0.0


@pytest.mark.parametrize(
    "avg_word, avg_sentence, expected",
    [
        (8, 30, KIULevel.PHD),
        (8, 22, KIULevel.MASTERS),
        (5.5, 30, KIULevel.UNDERGRADUATE),
        (8, 13, KIULevel.HIGH_SCHOOL),
        (4, 30, KIULevel.MIDDLE_SCHOOL),
        (8, 12, KIULevel.MIDDLE_SCHOOL),
    ],
)
def test_classify_first_matching_band_wins(avg_word: float, avg_sentence: float, expected: KIULevel) -> None:
    level, _ = kiu.classify(avg_word, avg_sentence)
    assert level == expected


def test_score_is_deterministic() -> None:
    text = "Quantum chromodynamics describes interactions between quarks and gluons. " * 40
    assert kiu.score(text) == kiu.score(text)


def test_graduated_score_matches_formula() -> None:
    text = "Mitochondria generate adenosine triphosphate through oxidative phosphorylation. " * 25
    result = kiu.score(text)
    words = kiu.word_count(text)
    expected = kiu.round_half_up(result.material_complexity * (words / 200 / 12), 2)
    assert result.graduated_score == expected
    assert result.graduated_score >= 0


def test_sentence_count_never_zero() -> None:
    assert kiu.sentence_count("no punctuation at all") == 1
    assert kiu.sentence_count("One. Two! Three?") == 4


def test_round_half_up_differs_from_bankers_rounding() -> None:
    assert kiu.round_half_up(0.125, 2) == 0.13
    assert kiu.round_half_up(2.5) == 3
    assert kiu.round_half_up(12.5) == 13


@pytest.mark.parametrize("text", ["", "   ", "\n\t "])
def test_empty_or_whitespace_text_is_rejected(text: str) -> None:
    with pytest.raises(ValidationError):
        kiu.score(text)


def test_result_serializes_with_camel_case_keys() -> None:
    data = kiu.score(_phd_text()).model_dump(mode="json", by_alias=True)
    assert data == {
        "materialComplexity": 10,
        "baselineKnowledge": 0,
        "graduatedScore": 10.0,
        "level": "PhD Level",
    }
