"""SQLModel data models.

Each class maps to a table. Primary keys are UUIDs generated on the
application side. Timestamps are timezone-aware UTC both ways; see
`UTCDateTime`.
"""

import uuid
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import DateTime
from sqlalchemy.types import TypeDecorator
from sqlmodel import Field, SQLModel

from .enums import (
    ExamCategory,
    ExamConfigType,
    ExamStatus,
    PracticeMode,
    PracticeSessionStatus,
    QuestionChoiceType,
    ReferralStatus,
    UserRole,
    WalletTxType,
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UTCDateTime(TypeDecorator):
    """`DateTime(timezone=True)` that always hands back aware UTC values.

    Values are converted to UTC before binding (naive input is taken as
    UTC). SQLite keeps no offset, so results read back naive get UTC
    attached.
    """
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def process_result_value(self, value, dialect):
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


def split_csv(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [part for part in value.split(",") if part]


def join_csv(values: Optional[List]) -> str:
    return ",".join(str(v) for v in (values or []))


class User(SQLModel, table=True):
    """A learner (or staff member) known to the platform.

    Learners arrive through Telegram login, so `telegram_id` is the
    natural key for them; `email` is optional.
    """
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    display_name: str
    email: Optional[str] = Field(default=None, index=True)
    telegram_id: Optional[str] = Field(default=None, index=True, unique=True)
    primary_exam: ExamCategory = ExamCategory.NEET_PG
    role: UserRole = UserRole.USER
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)


class ExamProfile(SQLModel, table=True):
    """Per user and exam progress counters."""
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    user_id: uuid.UUID = Field(foreign_key="user.id", index=True)
    exam: ExamCategory
    total_questions: int = 0
    total_correct: int = 0
    total_time_seconds: int = 0
    overall_level: int = 1
    current_streak_days: int = 0
    longest_streak_days: int = 0
    last_login_at: Optional[datetime] = Field(default=None, sa_type=UTCDateTime)
    last_practice_at: Optional[datetime] = Field(default=None, sa_type=UTCDateTime)


class Subject(SQLModel, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    exam: ExamCategory = Field(index=True)
    name: str
    is_active: bool = True


class Topic(SQLModel, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    subject_id: uuid.UUID = Field(foreign_key="subject.id", index=True)
    name: str
    is_active: bool = True


class Question(SQLModel, table=True):
    """A four-option question. `correct_option` is 1..4 (A..D)."""
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    exam: ExamCategory = Field(index=True)
    subject_id: uuid.UUID = Field(foreign_key="subject.id", index=True)
    topic_id: uuid.UUID = Field(foreign_key="topic.id", index=True)
    question_text: str
    option_a: str
    option_b: str
    option_c: str
    option_d: str
    correct_option: int
    explanation: Optional[str] = None
    difficulty_level: int = 1
    choice_type: QuestionChoiceType = QuestionChoiceType.SINGLE
    is_clinical: bool = False
    is_image_based: bool = False
    is_high_yield: bool = False
    is_active: bool = True


class PracticeSession(SQLModel, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    user_id: uuid.UUID = Field(foreign_key="user.id", index=True)
    mode: PracticeMode
    exam: ExamCategory
    status: PracticeSessionStatus = PracticeSessionStatus.IN_PROGRESS
    total_questions_planned: Optional[int] = None
    time_limit_minutes: Optional[int] = None
    started_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    completed_at: Optional[datetime] = Field(default=None, sa_type=UTCDateTime)


class PracticeSessionQuestion(SQLModel, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    session_id: uuid.UUID = Field(foreign_key="practicesession.id", index=True)
    question_id: uuid.UUID = Field(foreign_key="question.id")
    sequence_index: int
    selected_option: Optional[int] = None
    is_correct: Optional[bool] = None
    time_taken_ms: Optional[int] = None
    answered_at: Optional[datetime] = Field(default=None, sa_type=UTCDateTime)


class QuestionAttempt(SQLModel, table=True):
    """One answered question; source data for leaderboard and analytics."""
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    user_id: uuid.UUID = Field(foreign_key="user.id", index=True)
    question_id: uuid.UUID = Field(foreign_key="question.id", index=True)
    session_id: Optional[uuid.UUID] = Field(default=None, foreign_key="practicesession.id")
    exam: ExamCategory = Field(index=True)
    selected_option: int
    is_correct: bool
    time_taken_ms: Optional[int] = None
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime, index=True)


class RevisionItem(SQLModel, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    user_id: uuid.UUID = Field(foreign_key="user.id", index=True)
    question_id: uuid.UUID = Field(foreign_key="question.id")
    next_review_at: datetime = Field(sa_type=UTCDateTime)
    interval_index: int = 0
    times_reviewed: int = 0


class ExamConfig(SQLModel, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    exam: ExamCategory = Field(index=True)
    name: str
    type: ExamConfigType
    description: str = ""
    num_questions: int
    time_limit_minutes: int
    marks_per_correct: float = 1.0
    negative_per_wrong: float = 0.0
    entry_fee: int = 0
    schedule_start_at: Optional[datetime] = Field(default=None, sa_type=UTCDateTime)
    schedule_end_at: Optional[datetime] = Field(default=None, sa_type=UTCDateTime)
    status: ExamStatus = ExamStatus.DRAFT


class PodcastEpisode(SQLModel, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    exam: ExamCategory = Field(index=True)
    subject_id: Optional[uuid.UUID] = Field(default=None, foreign_key="subject.id")
    topic_id: Optional[uuid.UUID] = Field(default=None, foreign_key="topic.id")
    title: str
    description: str = ""
    audio_url: str
    duration_seconds: int = 0
    tags: str = ""
    is_active: bool = True


class WalletTransaction(SQLModel, table=True):
    """Ledger entry. Positive amounts are credits, negative are debits."""
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    user_id: uuid.UUID = Field(foreign_key="user.id", index=True)
    amount: int
    type: WalletTxType
    description: str = ""
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)


class Coupon(SQLModel, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    code: str = Field(index=True, unique=True)
    description: str = ""
    type: str = "FLAT"
    amount: int
    max_uses_total: int = 0
    max_uses_per_user: int = 1
    expires_at: Optional[datetime] = Field(default=None, sa_type=UTCDateTime)
    is_active: bool = True


class CouponRedemption(SQLModel, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    coupon_id: uuid.UUID = Field(foreign_key="coupon.id", index=True)
    user_id: uuid.UUID = Field(foreign_key="user.id", index=True)
    redeemed_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)


class Referral(SQLModel, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    referrer_id: uuid.UUID = Field(foreign_key="user.id", index=True)
    referred_user_id: Optional[uuid.UUID] = Field(default=None, foreign_key="user.id")
    status: ReferralStatus = ReferralStatus.INVITED
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)


class AISettingsRecord(SQLModel, table=True):
    """Single-row table holding the tutor tuning knobs."""
    id: int = Field(default=1, primary_key=True)
    weakness_min_attempts: int = 5
    weakness_threshold_percent: int = 50
    strong_threshold_percent: int = 80
    revision_intervals_days: str = "1,3,7,14,30"
    include_guessed_correct: bool = False
    revision_enabled: bool = True


class FeedPost(SQLModel, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    type: str
    title: str
    body: str
    image_url: Optional[str] = None
    tags: str = ""
    author: str = ""
    cta: str = ""
    likes: int = 0
    comments: int = 0
    read_time: str = ""
    created_at: datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
