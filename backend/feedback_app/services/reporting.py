"""
Feedback Reporting
==================

Grouping and averaging over submitted feedback. Everything here is a pure
function over `FeedbackRow` records so the dashboards (admin, HOD, dean) and
the tests share one implementation. Loading rows from the database lives in
`feedback_app.services.feedback_queries`.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Callable, Dict, Hashable, Iterable, List, Optional, Sequence, Tuple
import math

DEFAULT_CATEGORY = "General"

RATING_BUCKETS: List[Tuple[int, int]] = [(0, 1), (1, 2), (2, 3), (3, 4), (4, 5)]


@dataclass
class FeedbackRow:
    """A feedback record flattened together with its student and subject"""
    id: str
    average_rating: float
    created_at: datetime
    student_id: str
    subject_id: str
    student_name: Optional[str] = None
    roll_number: Optional[str] = None
    student_branch: Optional[str] = None
    student_year: Optional[int] = None
    subject_name: Optional[str] = None
    subject_code: Optional[str] = None
    instructor: Optional[str] = None
    subject_branch: Optional[str] = None
    department: Optional[str] = None
    semester: Optional[int] = None
    feedback_period_id: Optional[str] = None
    answers: List[Dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_models(cls, feedback, student, subject) -> "FeedbackRow":
        return cls(
            id=str(feedback.id),
            average_rating=feedback.average_rating or 0.0,
            created_at=feedback.created_at,
            student_id=str(feedback.student_id),
            subject_id=str(feedback.subject_id),
            student_name=getattr(student, "name", None),
            roll_number=getattr(student, "roll_number", None),
            student_branch=getattr(student, "branch", None),
            student_year=getattr(student, "year", None),
            subject_name=getattr(subject, "name", None),
            subject_code=getattr(subject, "code", None),
            instructor=getattr(subject, "instructor", None),
            subject_branch=getattr(subject, "branch", None),
            department=getattr(subject, "department", None),
            semester=getattr(subject, "semester", None),
            feedback_period_id=str(feedback.feedback_period_id) if feedback.feedback_period_id else None,
            answers=list(feedback.answers or []),
        )


@dataclass
class ReportGroup:
    key: Any
    labels: Dict[str, Any] = field(default_factory=dict)
    ratings: List[float] = field(default_factory=list)
    subject_ids: set = field(default_factory=set)

    @property
    def total_feedbacks(self) -> int:
        return len(self.ratings)

    @property
    def average_rating(self) -> Optional[float]:
        return average(self.ratings)

    @property
    def min_rating(self) -> Optional[float]:
        return min(self.ratings) if self.ratings else None

    @property
    def max_rating(self) -> Optional[float]:
        return max(self.ratings) if self.ratings else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            **self.labels,
            "total_feedbacks": self.total_feedbacks,
            "average_rating": round_rating(self.average_rating),
            "min_rating": self.min_rating,
            "max_rating": self.max_rating,
            "ratings": list(self.ratings),
        }


# ============================================
# Numbers
# ============================================

def average(values: Iterable[Optional[float]]) -> Optional[float]:
    """Mean of the non-None values, None when there are none"""
    present = [v for v in values if v is not None]
    if not present:
        return None
    return sum(present) / len(present)


def round_rating(value: Optional[float], digits: int = 1) -> Optional[float]:
    """Round half up (2.25 -> 2.3), keeping None as None"""
    if value is None:
        return None
    quantum = Decimal(1).scaleb(-digits)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def _is_rating(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def answer_average(answers: Sequence[Dict[str, Any]]) -> float:
    """Mean of the numeric answers; comment-only answers are skipped"""
    value = average(a.get("answer") for a in answers if _is_rating(a.get("answer")))
    return value if value is not None else 0.0


def satisfaction_rate(avg: Optional[float]) -> float:
    if avg is None:
        return 0.0
    return round_rating(avg / 5 * 100)


def completion_rate(total_feedbacks: int, students: int, subjects: int) -> int:
    """Share of the expected student x subject submissions received, capped at 100"""
    expected = students * subjects
    if expected <= 0:
        return 0
    return min(int(Decimal(total_feedbacks * 100 / expected).quantize(Decimal(1), rounding=ROUND_HALF_UP)), 100)


# ============================================
# Grouping
# ============================================

def group_feedback(
    rows: Iterable[FeedbackRow],
    key_fn: Callable[[FeedbackRow], Hashable],
    label_fn: Optional[Callable[[FeedbackRow], Dict[str, Any]]] = None,
) -> List[ReportGroup]:
    """Group rows by key_fn, best average first"""
    groups: Dict[Hashable, ReportGroup] = {}
    for row in rows:
        key = key_fn(row)
        group = groups.get(key)
        if group is None:
            labels = label_fn(row) if label_fn else {"key": key}
            group = groups[key] = ReportGroup(key=key, labels=labels)
        group.ratings.append(row.average_rating)
        group.subject_ids.add(row.subject_id)

    return sorted(
        groups.values(),
        key=lambda g: g.average_rating if g.average_rating is not None else -1,
        reverse=True,
    )


def _subject_labels(row: FeedbackRow) -> Dict[str, Any]:
    return {
        "subject_id": row.subject_id,
        "subject_name": row.subject_name,
        "subject_code": row.subject_code,
        "instructor": row.instructor,
        "branch": row.subject_branch,
        "semester": row.semester,
    }


def subject_ratings(rows: Iterable[FeedbackRow]) -> List[ReportGroup]:
    return group_feedback(rows, lambda r: r.subject_id, _subject_labels)


def branch_ratings(rows: Iterable[FeedbackRow]) -> List[ReportGroup]:
    """Ratings grouped by the submitting student's branch"""
    return group_feedback(rows, lambda r: r.student_branch, lambda r: {"branch": r.student_branch})


def instructor_performance(rows: Iterable[FeedbackRow], min_feedbacks: int = 1) -> List[Dict[str, Any]]:
    groups = group_feedback(
        rows,
        lambda r: r.instructor,
        lambda r: {"instructor": r.instructor, "department": r.department},
    )
    result = []
    for group in groups:
        if group.total_feedbacks < min_feedbacks:
            continue
        data = group.to_dict()
        data["subjects"] = len(group.subject_ids)
        result.append(data)
    return result


def top_subjects(rows: Iterable[FeedbackRow], min_feedbacks: int = 3, limit: int = 10) -> List[ReportGroup]:
    eligible = [g for g in subject_ratings(rows) if g.total_feedbacks >= min_feedbacks]
    return eligible[:limit]


def report_groups(rows: Iterable[FeedbackRow], group_by: str = "subject") -> List[ReportGroup]:
    """Dean report grouping: branch, subject or instructor"""
    if group_by == "branch":
        return branch_ratings(rows)
    if group_by == "instructor":
        return group_feedback(rows, lambda r: r.instructor, lambda r: {"instructor": r.instructor})
    return subject_ratings(rows)


def subject_rollup(
    subjects: Iterable[Any],
    rows: Iterable[FeedbackRow],
    key_fn: Callable[[Any], Hashable],
    label: str,
) -> List[Dict[str, Any]]:
    """
    Group subjects (not feedback) by key_fn.

    Subjects without feedback still count towards total_subjects. The average
    is the mean of the per-subject averages, ignoring subjects with none.
    """
    by_subject: Dict[str, List[float]] = {}
    for row in rows:
        by_subject.setdefault(row.subject_id, []).append(row.average_rating)

    groups: Dict[Hashable, Dict[str, Any]] = {}
    for subject in subjects:
        key = key_fn(subject)
        group = groups.setdefault(key, {label: key, "total_subjects": 0, "total_feedbacks": 0, "_averages": []})
        ratings = by_subject.get(str(subject.id), [])
        group["total_subjects"] += 1
        group["total_feedbacks"] += len(ratings)
        group["_averages"].append(average(ratings))

    result = []
    for group in groups.values():
        group["average_rating"] = round_rating(average(group.pop("_averages")))
        result.append(group)
    return result


# ============================================
# Time and distribution
# ============================================

def monthly_trends(rows: Iterable[FeedbackRow], since: Optional[datetime] = None) -> List[Dict[str, Any]]:
    """Feedback count and average per YYYY-MM, oldest month first"""
    months: Dict[str, List[float]] = {}
    for row in rows:
        if since is not None and row.created_at < since:
            continue
        months.setdefault(row.created_at.strftime("%Y-%m"), []).append(row.average_rating)

    return [
        {
            "month": month,
            "total_feedbacks": len(ratings),
            "average_rating": round_rating(average(ratings)),
        }
        for month, ratings in sorted(months.items())
    ]


def rating_distribution(rows: Iterable[FeedbackRow]) -> List[Dict[str, Any]]:
    """
    Count averages per one-point bucket. Buckets are half open except the
    last, so a perfect 5.0 lands in 4-5.
    """
    counts = [0] * len(RATING_BUCKETS)
    for row in rows:
        rating = row.average_rating
        if rating is None or rating < 0 or rating > 5:
            continue
        index = min(int(math.floor(rating)), len(RATING_BUCKETS) - 1)
        counts[index] += 1

    return [
        {"range": f"{low}-{high}", "min": low, "max": high, "count": count}
        for (low, high), count in zip(RATING_BUCKETS, counts)
    ]


# ============================================
# Per-subject detail
# ============================================

def question_summary(answer_sets: Iterable[Sequence[Dict[str, Any]]]) -> Dict[str, Dict[str, Any]]:
    """
    Average each question across submissions, grouped by category.

    Returns {category: {"average": x, "questions": [{"question", "average",
    "responses"}]}} with questions kept in first-seen order.
    """
    categories: Dict[str, Dict[str, List[float]]] = {}
    for answers in answer_sets:
        for answer in answers:
            value = answer.get("answer")
            if not _is_rating(value):
                continue
            category = answer.get("category") or DEFAULT_CATEGORY
            question = answer.get("question") or ""
            categories.setdefault(category, {}).setdefault(question, []).append(value)

    summary = {}
    for category, questions in categories.items():
        all_values = [v for values in questions.values() for v in values]
        summary[category] = {
            "average": round_rating(average(all_values)),
            "questions": [
                {"question": q, "average": round_rating(average(values)), "responses": len(values)}
                for q, values in questions.items()
            ],
        }
    return summary


def feedback_status_matrix(
    students: Sequence[Any],
    subjects: Sequence[Any],
    submitted: Dict[Tuple[str, str], datetime],
) -> List[Dict[str, Any]]:
    """
    For each subject, the students expected to review it and whether they have.

    A student is eligible when their year matches the subject's year
    (ceil(semester / 2)). `submitted` maps (student_id, subject_id) to the
    submission time.
    """
    matrix = []
    for subject in subjects:
        subject_year = math.ceil(subject.semester / 2) if subject.semester else None
        entries = []
        for student in students:
            if subject_year is None or student.year != subject_year:
                continue
            submitted_at = submitted.get((str(student.id), str(subject.id)))
            entries.append({
                "student_id": str(student.id),
                "name": student.name,
                "roll_number": student.roll_number,
                "submitted": submitted_at is not None,
                "submitted_at": submitted_at,
            })
        submitted_count = sum(1 for e in entries if e["submitted"])
        matrix.append({
            "subject": {
                "id": str(subject.id),
                "name": subject.name,
                "code": subject.code,
                "semester": subject.semester,
                "year": subject_year,
            },
            "students": entries,
            "total_students": len(entries),
            "submitted_count": submitted_count,
            "pending_count": len(entries) - submitted_count,
        })
    return matrix
