import logging
import random

import pytest

from schemas.aggregates import AggregationPolicy
from schemas.records import ScoreRecord
from services.aggregation.averages import (
    compute_overall_average,
    compute_subject_average,
    compute_subject_averages,
    letter_grade,
    rank_by_average,
    score_distribution,
    score_stats,
    student_score_stats,
)
from services.aggregation.errors import ConfigurationError


def score(value, weight=1.0, max_score=10.0, absent=False, component="gc-quiz", subject="math", student="s1", **kw):
    return ScoreRecord(
        student_id=student,
        subject_id=subject,
        grade_component_id=component,
        weight=weight,
        max_score=max_score,
        score=value,
        is_absent=absent,
        **kw,
    )


# =========================================================
# 과목 평균
# =========================================================

def test_weighted_average_of_two_components():
    records = [score(8, weight=1, component="gc-quiz"), score(6, weight=2, component="gc-test")]
    result = compute_subject_average(records, student_id="s1", subject_id="math")

    assert result.average == 66.67
    assert result.letter_grade == "D"
    assert result.has_scores is True
    breakdown = {c.grade_component_id: c for c in result.component_breakdown}
    assert breakdown["gc-quiz"].average_percentage == 80.0
    assert breakdown["gc-quiz"].contribution == 26.67
    assert breakdown["gc-test"].average_percentage == 60.0
    assert breakdown["gc-test"].contribution == 40.0
    assert breakdown["gc-test"].assessments_counted == 1


def test_only_absent_score_gives_zero_and_empty_breakdown():
    result = compute_subject_average([score(9, absent=True)], student_id="s1", subject_id="math")
    assert result.average == 0.0
    assert result.component_breakdown == []
    assert result.letter_grade == "-"
    assert result.has_scores is False


def test_absent_scores_are_excluded_not_counted_as_zero():
    base = [score(8, weight=1, component="gc-quiz"), score(6, weight=2, component="gc-test")]
    with_absent = base + [score(0, weight=5, component="gc-quiz", absent=True)]
    assert (
        compute_subject_average(with_absent, student_id="s1", subject_id="math").average
        == compute_subject_average(base, student_id="s1", subject_id="math").average
    )


@pytest.mark.parametrize(
    "bad, message",
    [
        (dict(value=5, max_score=0), "만점이 0 이하인 점수 제외"),
        (dict(value=5, weight=0), "가중치가 0 이하인 점수 제외"),
        (dict(value=5, weight=-1), "가중치가 0 이하인 점수 제외"),
        (dict(value=12), "범위를 벗어난 점수 제외"),
        (dict(value=-1), "범위를 벗어난 점수 제외"),
    ],
)
def test_invalid_scores_are_excluded_with_a_warning(bad, message, caplog):
    base = [score(8, weight=1, component="gc-quiz"), score(6, weight=2, component="gc-test")]
    with caplog.at_level(logging.WARNING):
        result = compute_subject_average(
            base + [score(component="gc-quiz", score_id="bad", **bad)], student_id="s1", subject_id="math",
        )
    assert result.average == compute_subject_average(base, student_id="s1", subject_id="math").average
    assert message in caplog.text


def test_only_invalid_scores_give_zero():
    result = compute_subject_average([score(15), score(5, max_score=0)], student_id="s1", subject_id="math")
    assert result.average == 0.0
    assert result.has_scores is False


def test_averages_stay_within_zero_and_one_hundred():
    rng = random.Random(7)
    for _ in range(50):
        records = [
            score(
                rng.uniform(-5, 25), weight=rng.choice([-1, 0, 0.5, 1, 3]), max_score=rng.choice([0, 10, 20]),
                component=f"gc-{rng.randint(1, 3)}", absent=rng.random() < 0.2,
            )
            for _ in range(8)
        ]
        average = compute_subject_average(records, student_id="s1", subject_id="math").average
        assert 0.0 <= average <= 100.0


def test_average_does_not_depend_on_input_order():
    records = [
        score(8, weight=1, component="gc-quiz"),
        score(6, weight=2, component="gc-test"),
        score(7.5, weight=3, component="gc-final", max_score=20),
        score(4, weight=1, component="gc-quiz"),
    ]
    forward = compute_subject_average(records, student_id="s1", subject_id="math")
    backward = compute_subject_average(list(reversed(records)), student_id="s1", subject_id="math")
    assert forward.average == backward.average


def test_full_marks_give_one_hundred_and_no_scores_give_zero():
    full = compute_subject_average(
        [score(10), score(20, max_score=20, component="gc-test", weight=4)],
        student_id="s1", subject_id="math",
    )
    assert full.average == 100.0
    assert full.letter_grade == "A"
    assert compute_subject_average([], student_id="s1", subject_id="math").average == 0.0


def test_mixed_max_scores_are_compared_as_percentages():
    result = compute_subject_average(
        [score(5, max_score=10), score(50, max_score=100, component="gc-test")],
        student_id="s1", subject_id="math",
    )
    assert result.average == 50.0


def test_records_for_another_student_are_a_configuration_error():
    with pytest.raises(ConfigurationError):
        compute_subject_average([score(5, student="s2")], student_id="s1", subject_id="math")


def test_records_for_another_subject_are_a_configuration_error():
    with pytest.raises(ConfigurationError):
        compute_subject_average([score(5, subject="lit")], student_id="s1", subject_id="math")


def test_missing_subject_id_with_records_is_a_configuration_error():
    with pytest.raises(ConfigurationError):
        compute_subject_average([score(5, subject="")], student_id="s1", subject_id="")


def test_input_records_are_not_modified():
    records = [score(8), score(6, weight=2, component="gc-test")]
    before = [r.model_dump() for r in records]
    compute_subject_average(records, student_id="s1", subject_id="math")
    assert [r.model_dump() for r in records] == before


def test_compute_subject_averages_groups_in_first_seen_order():
    records = [
        score(9, subject="lit", subject_name="Literature"),
        score(8, subject="math"),
        score(6, subject="lit", component="gc-test", weight=2),
        score(5, subject=""),
    ]
    averages = compute_subject_averages(records, student_id="s1")
    assert [a.subject_id for a in averages] == ["lit", "math"]
    assert averages[0].subject_name == "Literature"
    assert averages[0].average == 70.0
    assert averages[1].average == 80.0


# =========================================================
# 전체 평균
# =========================================================

def _averages():
    return compute_subject_averages(
        [
            score(9, subject="lit"),
            score(6, subject="math"),
            score(5, subject="art", absent=True),
        ],
        student_id="s1",
    )


def test_overall_average_is_unweighted_by_default_and_skips_empty_subjects():
    assert compute_overall_average(_averages()) == 75.0


def test_overall_average_weighted_by_subject_weights():
    policy = AggregationPolicy(overall_average_mode="weighted", subject_weights={"math": 3})
    # (90×1 + 60×3) / 4
    assert compute_overall_average(_averages(), policy) == 67.5


def test_overall_average_mode_argument_overrides_policy():
    policy = AggregationPolicy(overall_average_mode="weighted", subject_weights={"math": 3})
    assert compute_overall_average(_averages(), policy, mode="unweighted") == 75.0


def test_overall_average_rejects_unknown_mode_and_bad_weights():
    with pytest.raises(ConfigurationError):
        compute_overall_average(_averages(), mode="median")
    with pytest.raises(ConfigurationError):
        compute_overall_average(
            _averages(), AggregationPolicy(overall_average_mode="weighted", subject_weights={"lit": 0})
        )


def test_overall_average_of_nothing_is_zero():
    assert compute_overall_average([]) == 0.0


@pytest.mark.parametrize("percentage, expected", [
    (100, "A"), (90, "A"), (89.99, "B"), (80, "B"), (70, "C"), (60, "D"), (59.99, "F"), (0, "F"),
])
def test_letter_grade_cutoffs(percentage, expected):
    assert letter_grade(percentage) == expected


# =========================================================
# 성적부 통계
# =========================================================

def test_student_score_stats_counts_completion():
    stats = student_score_stats("s1", "Kim", [score(8), score(0, absent=True), score(6, component="gc-test")])
    assert stats.completed_assessments == 2
    assert stats.total_assessments == 3
    assert stats.completion_rate == 66.67
    assert stats.average_score == 70.0


def test_score_stats_ignores_students_without_scores():
    stats = score_stats([90.0, 40.0, 0.0], total_students=3, pass_threshold=50.0)
    assert stats.average == 65.0
    assert stats.highest == 90.0
    assert stats.lowest == 40.0
    assert stats.passed_students == 1
    # 분모는 반 전체 인원
    assert stats.pass_rate == 33.33


def test_score_stats_empty_class():
    stats = score_stats([], total_students=0, pass_threshold=50.0)
    assert stats.average == 0.0
    assert stats.pass_rate == 0.0


def test_rank_by_average_shares_rank_on_ties():
    ranked = rank_by_average([("a", 80), ("b", 90), ("c", 80), ("d", 70)], key=lambda item: item[1])
    assert [(rank, name) for rank, (name, _) in ranked] == [(1, "b"), (2, "a"), (2, "c"), (4, "d")]


def test_score_distribution_buckets():
    assert score_distribution([59.99, 60, 75, 89.5, 90, 100]) == {
        "0-59": 1,
        "60-69": 1,
        "70-79": 1,
        "80-89": 1,
        "90-100": 2,
    }
