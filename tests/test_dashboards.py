from datetime import datetime, timedelta, timezone

import pytest

from schemas.aggregates import AggregationPolicy
from schemas.records import Announcement, Assessment, BehaviorLevel, BehaviorNote, ScoreRecord, StudentRef
from services.aggregation.averages import compute_subject_averages
from services.aggregation.behavior import find_group, group_notes_by_student
from services.aggregation.dashboards import (
    ALERT_BEHAVIOR,
    ALERT_LOW_AVERAGE,
    compose_child_overview,
    compose_class_behavior,
    compose_parent_dashboard,
    compose_student_dashboard,
    compose_teacher_gradebook,
    recent_announcements,
    recent_scores,
    upcoming_assessments,
)
from services.aggregation.errors import ConfigurationError

NOW = datetime(2026, 4, 1, 9, 0, tzinfo=timezone.utc)


def score(student, value, subject="math", component="gc-quiz", weight=1.0, absent=False, days_ago=1, **kw):
    return ScoreRecord(
        student_id=student,
        subject_id=subject,
        grade_component_id=component,
        weight=weight,
        max_score=10.0,
        score=value,
        is_absent=absent,
        created_at=NOW - timedelta(days=days_ago),
        **kw,
    )


def behavior(student, level, days_ago):
    return BehaviorNote(
        id=f"{student}-{days_ago}",
        student_id=student,
        level=level,
        created_at=NOW - timedelta(days=days_ago),
    )


def announcement(announcement_id, days_ago, urgent=False, expires_in=None):
    return Announcement(
        announcement_id=announcement_id,
        title=announcement_id,
        created_at=NOW - timedelta(days=days_ago),
        expires_at=None if expires_in is None else NOW + timedelta(days=expires_in),
        is_urgent=urgent,
    )


def assessment(assessment_id, days_from_now):
    return Assessment(assessment_id=assessment_id, title=assessment_id, due_date=NOW + timedelta(days=days_from_now))


def child(student_id, scores, notes, policy=None):
    student = StudentRef(student_id=student_id, full_name=student_id.upper())
    group = find_group(group_notes_by_student(notes), student_id)
    averages = compute_subject_averages(scores, student_id=student_id)
    return compose_child_overview(student, averages, group, [], [], scores, NOW, policy)


# =========================================================
# 목록 필터
# =========================================================

def test_upcoming_assessments_are_future_only_and_soonest_first():
    items = [assessment("late", 10), assessment("past", -1), assessment("soon", 2)]
    assert [a.assessment_id for a in upcoming_assessments(items, NOW)] == ["soon", "late"]
    assert [a.assessment_id for a in upcoming_assessments(items, NOW, limit=1)] == ["soon"]


def test_recent_announcements_drop_expired_and_duplicates():
    items = [
        announcement("old", 10),
        announcement("expired", 1, expires_in=-1),
        announcement("new", 0, urgent=True),
        announcement("old", 10),
    ]
    assert [a.announcement_id for a in recent_announcements(items, NOW)] == ["new", "old"]
    assert [a.announcement_id for a in recent_announcements(items, NOW, include_expired=True)] == [
        "new", "expired", "old",
    ]
    assert [a.announcement_id for a in recent_announcements(items, NOW, urgent_only=True)] == ["new"]
    assert [a.announcement_id for a in recent_announcements(items, NOW, limit=1)] == ["new"]


def test_recent_scores_newest_first_with_absent_percentage_zero():
    cards = recent_scores(
        [
            score("s1", 8, days_ago=3, assessment_name="Quiz 1"),
            score("s1", 0, days_ago=1, absent=True, component_name="Quiz"),
            score("s1", 5, days_ago=2),
        ],
        limit=2,
    )
    assert [c.title for c in cards] == ["Quiz", "Assessment"]
    assert cards[0].percentage == 0.0
    assert cards[1].percentage == 50.0


# =========================================================
# 학생 대시보드
# =========================================================

def test_student_dashboard_combines_grades_behavior_and_schedule():
    student = StudentRef(student_id="s1", full_name="Kim", class_id="c1")
    scores = [
        score("s1", 8, component="gc-quiz"),
        score("s1", 6, component="gc-test", weight=2),
        score("s1", 9, subject="lit"),
    ]
    notes = [behavior("s1", BehaviorLevel.GOOD, 5), behavior("s1", BehaviorLevel.FAIR, 2)]
    dashboard = compose_student_dashboard(
        student,
        compute_subject_averages(scores, student_id="s1"),
        find_group(group_notes_by_student(notes), "s1"),
        [assessment("next", 3), assessment("done", -3)],
        [announcement("a1", 1), announcement("gone", 2, expires_in=-1)],
        scores,
        NOW,
        term_id="t1",
    )
    assert [s.subject_id for s in dashboard.subjects] == ["math", "lit"]
    assert dashboard.overall_average == pytest.approx(78.34, abs=0.01)
    assert dashboard.letter_grade == "C"
    assert dashboard.behavior_summary.total == 2
    assert dashboard.latest_behavior_note.level == BehaviorLevel.FAIR
    assert [a.assessment_id for a in dashboard.upcoming_assessments] == ["next"]
    assert [a.announcement_id for a in dashboard.recent_announcements] == ["a1"]
    assert len(dashboard.recent_scores) == 3
    assert dashboard.term_id == "t1"
    assert dashboard.generated_at == NOW


def test_student_dashboard_with_no_data_is_empty_not_an_error():
    dashboard = compose_student_dashboard(StudentRef(student_id="s1"), [], None, [], [], [], NOW)
    assert dashboard.overall_average == 0.0
    assert dashboard.letter_grade == "-"
    assert dashboard.behavior_summary.total == 0
    assert dashboard.latest_behavior_note is None
    assert dashboard.subjects == []


def test_student_dashboard_rejects_behavior_of_another_student():
    group = group_notes_by_student([behavior("s2", BehaviorLevel.GOOD, 1)])[0]
    with pytest.raises(ConfigurationError):
        compose_student_dashboard(StudentRef(student_id="s1"), [], group, [], [], [], NOW)


def test_recent_scores_limit_comes_from_policy():
    scores = [score("s1", 5, days_ago=d) for d in range(1, 6)]
    dashboard = compose_student_dashboard(
        StudentRef(student_id="s1"), compute_subject_averages(scores, student_id="s1"), None, [], [], scores,
        NOW, AggregationPolicy(recent_scores_limit=2),
    )
    assert len(dashboard.recent_scores) == 2


# =========================================================
# 학부모 경고
# =========================================================

def test_low_average_raises_alert():
    overview = child("s1", [score("s1", 4)], [])
    assert overview.is_urgent is True
    assert overview.alert_reasons == [ALERT_LOW_AVERAGE]


def test_average_exactly_at_threshold_is_not_urgent():
    overview = child("s1", [score("s1", 5)], [])
    assert overview.overall_average == 50.0
    assert overview.is_urgent is False


def test_latest_poor_note_raises_alert_even_with_good_grades():
    overview = child(
        "s1", [score("s1", 9)],
        [behavior("s1", BehaviorLevel.EXCELLENT, 3), behavior("s1", BehaviorLevel.POOR, 1)],
    )
    assert overview.alert_reasons == [ALERT_BEHAVIOR]


def test_older_poor_note_does_not_raise_alert():
    overview = child(
        "s1", [score("s1", 9)],
        [behavior("s1", BehaviorLevel.POOR, 3), behavior("s1", BehaviorLevel.GOOD, 1)],
    )
    assert overview.is_urgent is False


def test_student_without_scores_gets_no_low_average_alert():
    overview = child("s1", [score("s1", 0, absent=True)], [])
    assert overview.is_urgent is False
    assert overview.alert_reasons == []


def test_alert_thresholds_follow_policy():
    policy = AggregationPolicy(urgent_average_threshold=95.0, urgent_behavior_level=BehaviorLevel.FAIR)
    overview = child("s1", [score("s1", 9)], [behavior("s1", BehaviorLevel.FAIR, 1)], policy)
    assert overview.alert_reasons == [ALERT_LOW_AVERAGE, ALERT_BEHAVIOR]


def test_parent_dashboard_aggregates_children():
    children = [
        child("s1", [score("s1", 9)], [behavior("s1", BehaviorLevel.NEEDS_IMPROVEMENT, 2)]),
        child("s2", [score("s2", 3)], [behavior("s2", BehaviorLevel.POOR, 1)]),
        child("s3", [], []),
    ]
    dashboard = compose_parent_dashboard(
        "p1", children, [announcement("x", 2), announcement("y", 1), announcement("x", 2)], NOW,
    )
    assert dashboard.urgent_alerts == ["s2"]
    # 점수가 없는 자녀(s3)는 가족 평균에서 제외
    assert dashboard.family_average == 60.0
    assert dashboard.total_behavior_issues == 2
    assert [a.announcement_id for a in dashboard.recent_announcements] == ["y", "x"]
    assert len(dashboard.children) == 3


def test_parent_without_children_gets_empty_dashboard():
    dashboard = compose_parent_dashboard("p1", [], [], NOW)
    assert dashboard.children == []
    assert dashboard.family_average == 0.0
    assert dashboard.urgent_alerts == []


# =========================================================
# 교사 성적부 / 반 행동 기록
# =========================================================

def test_teacher_gradebook_ranks_and_flags_students():
    roster = [
        StudentRef(student_id="s1", full_name="A"),
        StudentRef(student_id="s2", full_name="B"),
        StudentRef(student_id="s3", full_name="C"),
        StudentRef(student_id="s4", full_name="D"),
    ]
    records = [
        score("s1", 9), score("s1", 7, component="gc-test"),
        score("s2", 6),
        score("s3", 8), score("s3", 0, absent=True, component="gc-test"),
        score("s5", 9),
    ]
    gradebook = compose_teacher_gradebook("c1", "math", "t1", roster, records)

    rows = {r.student_id: r for r in gradebook.rows}
    assert [r.student_id for r in gradebook.rows] == ["s5", "s1", "s3", "s2", "s4"]
    assert [r.rank for r in gradebook.rows] == [1, 2, 2, 4, 5]
    assert rows["s5"].full_name == "Unknown Student"
    assert rows["s3"].completed_assessments == 1
    assert rows["s3"].total_assessments == 2
    assert rows["s3"].completion_rate == 50.0
    assert rows["s4"].letter_grade == "-"

    assert gradebook.need_guidance == ["s2"]
    assert gradebook.distribution == {"0-59": 0, "60-69": 1, "70-79": 0, "80-89": 2, "90-100": 1}
    assert gradebook.stats.total_students == 5
    assert gradebook.stats.passed_students == 4
    assert gradebook.stats.pass_rate == 80.0
    assert gradebook.stats.highest == 90.0
    assert gradebook.stats.lowest == 60.0


def test_class_behavior_view_totals():
    view = compose_class_behavior(
        "c1", "t1",
        [
            behavior("s1", BehaviorLevel.GOOD, 3),
            behavior("s2", BehaviorLevel.POOR, 1),
            behavior("s1", BehaviorLevel.POOR, 2),
        ],
        {"s1": "Kim"},
    )
    assert [g.student_id for g in view.students] == ["s2", "s1"]
    assert view.students[1].student_name == "Kim"
    assert view.total_notes == 3
    assert view.summary.poor_count == 2
    assert view.summary.good_count == 1


def test_naive_timestamps_compare_with_aware_now():
    naive_now = NOW.replace(tzinfo=None)
    items = [
        Assessment(assessment_id="soon", title="soon", due_date=naive_now + timedelta(days=1)),
        Assessment(assessment_id="past", title="past", due_date=naive_now - timedelta(days=1)),
    ]
    assert [a.assessment_id for a in upcoming_assessments(items, NOW)] == ["soon"]

    notices = [
        Announcement(announcement_id="live", title="live", created_at=naive_now,
                     expires_at=naive_now + timedelta(days=1)),
        Announcement(announcement_id="gone", title="gone", created_at=naive_now - timedelta(days=2),
                     expires_at=naive_now - timedelta(days=1)),
    ]
    assert [a.announcement_id for a in recent_announcements(notices, NOW)] == ["live"]
