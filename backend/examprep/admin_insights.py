"""Dashboard figures for the admin console that have no backing data yet.

Everything here is deterministic: outputs depend only on the arguments,
the bootstrap admin's primary exam and the injected clock. The numbers
are fixed placeholders shared with the existing console frontend.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional

from . import errors
from .enums import ExamCategory, ExamConfigType, ExamStatus

METRIC_BASES = {
    "active_users": 750,
    "questions_answered": 1800,
}

RANGE_DAYS = {
    "today": 1,
    "7d": 7,
    "7day": 7,
    "7days": 7,
    "30d": 30,
    "30day": 30,
    "30days": 30,
}

_EPOCH = date(1970, 1, 1)

SUBJECT_ACCURACY = [
    ("subj_anat", "Anatomy", 0.72),
    ("subj_biochem", "Biochemistry", 0.64),
    ("subj_path", "Pathology", 0.58),
    ("subj_pharma", "Pharmacology", 0.61),
]

# (subject id, subject name, topic id, topic name, accuracy, attempts)
WEAK_TOPICS = [
    ("subj_pharma", "Pharmacology", "topic_autonomic", "Autonomic Drugs", 0.42, 1240),
    ("subj_path", "Pathology", "topic_neoplasia", "Neoplasia", 0.48, 980),
    ("subj_micro", "Microbiology", "topic_virology", "Virology", 0.45, 1110),
    ("subj_anat", "Anatomy", "topic_neuro", "Neuro Anatomy", 0.41, 890),
]

# window -> (total referrals, rewards paid, new users)
REFERRAL_FIGURES = {
    "today": (28, 980, 12),
    "7d": (210, 4200, 75),
}
REFERRAL_DEFAULT = (980, 18200, 320)


def range_to_days(window: str) -> int:
    """Map a range label (`today`, `7d`, `30d` and spelling variants) to days."""
    days = RANGE_DAYS.get(window.strip().lower())
    if days is None:
        raise errors.InvalidRangeError()
    return days


def metric_value(metric: str, day: date) -> int:
    epoch_day = (day - _EPOCH).days
    return METRIC_BASES[metric] + epoch_day % 200 + 100


def _exam_label(exam: ExamCategory) -> str:
    return exam.value.replace("_", " ")


class AdminInsights:
    def __init__(self, default_exam: ExamCategory, clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc)):
        self.default_exam = ExamCategory(default_exam)
        self._clock = clock

    def _exam(self, exam: Optional[ExamCategory]) -> ExamCategory:
        return ExamCategory(exam) if exam else self.default_exam

    def time_series(self, metric: str, exam: Optional[ExamCategory] = None, window: Optional[str] = None) -> Dict:
        """One point per day of the window, oldest first.

        Raises `InvalidMetricError` for an unknown metric and
        `InvalidRangeError` for an unknown window. The echoed range is the
        caller's string, not the normalised one.
        """
        metric = (metric or "").strip().lower()
        if metric not in METRIC_BASES:
            raise errors.InvalidMetricError()
        window = window or "7d"
        days = range_to_days(window)
        today = self._clock().astimezone(timezone.utc).date()
        points = []
        for offset in range(days - 1, -1, -1):
            day = today - timedelta(days=offset)
            points.append({"date": day.strftime("%Y-%m-%d"), "value": metric_value(metric, day)})
        return {"metric": metric, "exam": self._exam(exam), "range": window, "points": points}

    def subject_accuracy(self, exam: Optional[ExamCategory] = None) -> Dict:
        subjects = [
            {"subject_id": sid, "subject_name": name, "accuracy": acc}
            for sid, name, acc in SUBJECT_ACCURACY
        ]
        return {"exam": self._exam(exam), "subjects": subjects}

    def weak_topics(self, exam: Optional[ExamCategory] = None, limit: int = 0) -> Dict:
        """Return the weakest topics; a limit outside 1..len returns them all."""
        prefix = _exam_label(self._exam(exam))
        items: List[Dict] = [
            {
                "subject_id": sid,
                "subject_name": f"{prefix} {subject}",
                "topic_id": tid,
                "topic_name": topic,
                "accuracy": acc,
                "attempts": attempts,
            }
            for sid, subject, tid, topic, acc, attempts in WEAK_TOPICS
        ]
        if limit <= 0 or limit > len(items):
            limit = len(items)
        return {"items": items[:limit]}

    def upcoming_events(self, exam: Optional[ExamCategory] = None) -> Dict:
        target = self._exam(exam)
        now = self._clock()
        items = [
            {
                "id": "mock-bio-1",
                "name": f"{_exam_label(target)} - High Yield Bio Mock",
                "exam": target,
                "type": ExamConfigType.MOCK,
                "start_at": now + timedelta(hours=72),
                "registered_count": 2420,
                "status": ExamStatus.SCHEDULED,
            },
            {
                "id": "daily-test-2",
                "name": "Daily Rapid Fire",
                "exam": target,
                "type": ExamConfigType.DAILY_TEST,
                "start_at": now + timedelta(hours=24),
                "registered_count": 1340,
                "status": ExamStatus.SCHEDULED,
            },
        ]
        return {"items": items}

    def referral_summary(self, window: Optional[str] = None) -> Dict:
        window = window or "30d"
        total, rewards, new_users = REFERRAL_FIGURES.get(window, REFERRAL_DEFAULT)
        return {
            "range": window,
            "total_referrals": total,
            "rewards_paid": rewards,
            "new_users": new_users,
        }
