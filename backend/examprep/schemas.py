"""Pydantic request/response schemas used by the API.

All schemas speak camelCase on the wire and accept snake_case field
names in Python. Response schemas validate straight from SQLModel rows
(`from_attributes`), so services can return ORM objects and let the
route's `response_model` shape the JSON.
"""

import uuid
from datetime import datetime
from typing import Annotated, List, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

from .enums import (
    AdminUserRole,
    AdminUserStatus,
    ExamCategory,
    ExamConfigType,
    ExamStatus,
    PracticeMode,
    PracticeSessionStatus,
    QuestionChoiceType,
    UserRole,
    WalletTxType,
)
from .models import split_csv


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


def _csv_to_list(value):
    if isinstance(value, str):
        return split_csv(value)
    return value


def _lower(value):
    if isinstance(value, str):
        return value.strip().lower()
    return value


CsvList = Annotated[List[str], BeforeValidator(_csv_to_list)]
IntCsvList = Annotated[List[int], BeforeValidator(_csv_to_list)]
RoleIn = Annotated[AdminUserRole, BeforeValidator(_lower)]
StatusIn = Annotated[AdminUserStatus, BeforeValidator(_lower)]


# -- auth / users -----------------------------------------------------------

class TelegramAuthRequest(CamelModel):
    telegram_id: str = Field(min_length=1)
    display_name: str = ""
    exam: ExamCategory


class AdminLoginRequest(CamelModel):
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)


class UserOut(CamelModel):
    id: uuid.UUID
    display_name: str
    email: Optional[str] = None
    telegram_id: Optional[str] = None
    primary_exam: ExamCategory
    role: UserRole
    created_at: datetime


class AuthResponse(CamelModel):
    access_token: str
    user: UserOut


class AdminProfileOut(CamelModel):
    id: uuid.UUID
    display_name: str
    email: str
    role: str
    primary_exam: ExamCategory
    created_at: datetime
    permissions: List[str]


class ExamProfileOut(CamelModel):
    exam: ExamCategory
    total_questions: int = 0
    total_correct: int = 0
    total_time_seconds: int = 0
    overall_level: int = 1
    current_streak_days: int = 0
    longest_streak_days: int = 0
    last_login_at: Optional[datetime] = None


class MeResponse(CamelModel):
    user: UserOut
    exam_profile: ExamProfileOut


# -- catalogue --------------------------------------------------------------

class SubjectIn(CamelModel):
    exam: ExamCategory
    name: str = Field(min_length=1)


class SubjectOut(CamelModel):
    id: uuid.UUID
    exam: ExamCategory
    name: str
    is_active: bool


class TopicIn(CamelModel):
    subject_id: uuid.UUID
    name: str = Field(min_length=1)


class TopicOut(CamelModel):
    id: uuid.UUID
    subject_id: uuid.UUID
    name: str
    is_active: bool


class QuestionIn(CamelModel):
    exam: ExamCategory
    subject_id: uuid.UUID
    topic_id: uuid.UUID
    question_text: str = Field(min_length=1)
    option_a: str = Field(min_length=1)
    option_b: str = Field(min_length=1)
    option_c: str = Field(min_length=1)
    option_d: str = Field(min_length=1)
    correct_option: int = Field(ge=1, le=4)
    explanation: Optional[str] = None
    difficulty_level: int = Field(default=1, ge=1, le=5)
    choice_type: QuestionChoiceType = QuestionChoiceType.SINGLE
    is_clinical: bool = False
    is_image_based: bool = False
    is_high_yield: bool = False
    is_active: bool = True


class QuestionUpdate(CamelModel):
    subject_id: Optional[uuid.UUID] = None
    topic_id: Optional[uuid.UUID] = None
    question_text: Optional[str] = Field(default=None, min_length=1)
    option_a: Optional[str] = None
    option_b: Optional[str] = None
    option_c: Optional[str] = None
    option_d: Optional[str] = None
    correct_option: Optional[int] = Field(default=None, ge=1, le=4)
    explanation: Optional[str] = None
    difficulty_level: Optional[int] = Field(default=None, ge=1, le=5)
    choice_type: Optional[QuestionChoiceType] = None
    is_clinical: Optional[bool] = None
    is_image_based: Optional[bool] = None
    is_high_yield: Optional[bool] = None
    is_active: Optional[bool] = None


class QuestionOut(CamelModel):
    id: uuid.UUID
    exam: ExamCategory
    subject_id: uuid.UUID
    topic_id: uuid.UUID
    question_text: str
    option_a: str
    option_b: str
    option_c: str
    option_d: str
    correct_option: int
    explanation: Optional[str] = None
    difficulty_level: int
    choice_type: QuestionChoiceType
    is_clinical: bool
    is_image_based: bool
    is_high_yield: bool
    is_active: bool


# -- practice / revision ----------------------------------------------------

class PracticeSessionCreateRequest(CamelModel):
    mode: PracticeMode
    exam: Optional[ExamCategory] = None
    subject_ids: List[uuid.UUID] = []
    topic_ids: List[uuid.UUID] = []
    difficulty_levels: List[int] = []
    num_questions: int = Field(default=10, ge=1, le=200)
    time_limit_minutes: Optional[int] = Field(default=None, ge=1)


class PracticeSessionOut(CamelModel):
    id: uuid.UUID
    mode: PracticeMode
    exam: ExamCategory
    status: PracticeSessionStatus
    total_questions_planned: Optional[int] = None
    started_at: datetime
    completed_at: Optional[datetime] = None


class PracticeSessionQuestionOut(CamelModel):
    id: uuid.UUID
    sequence_index: int
    question: QuestionOut
    selected_option: Optional[int] = None
    is_correct: Optional[bool] = None
    time_taken_ms: Optional[int] = None
    answered_at: Optional[datetime] = None


class PracticeSessionDetail(CamelModel):
    session: PracticeSessionOut
    questions: List[PracticeSessionQuestionOut]


class PracticeAnswerRequest(CamelModel):
    session_question_id: uuid.UUID
    selected_option: int = Field(ge=1, le=4)
    time_taken_ms: Optional[int] = Field(default=None, ge=0)


class RevisionItemOut(CamelModel):
    id: uuid.UUID
    question: QuestionOut
    next_review_at: datetime
    interval_index: int
    times_reviewed: int


# -- exams / events ---------------------------------------------------------

class ExamConfigIn(CamelModel):
    exam: ExamCategory
    name: str = Field(min_length=1)
    type: ExamConfigType
    description: str = ""
    num_questions: int = Field(ge=1)
    time_limit_minutes: int = Field(ge=1)
    marks_per_correct: float = 1.0
    negative_per_wrong: float = 0.0
    entry_fee: int = Field(default=0, ge=0)
    schedule_start_at: Optional[datetime] = None
    schedule_end_at: Optional[datetime] = None


class ExamConfigUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1)
    type: Optional[ExamConfigType] = None
    description: Optional[str] = None
    num_questions: Optional[int] = Field(default=None, ge=1)
    time_limit_minutes: Optional[int] = Field(default=None, ge=1)
    marks_per_correct: Optional[float] = None
    negative_per_wrong: Optional[float] = None
    entry_fee: Optional[int] = Field(default=None, ge=0)
    schedule_start_at: Optional[datetime] = None
    schedule_end_at: Optional[datetime] = None
    status: Optional[ExamStatus] = None


class ExamConfigOut(CamelModel):
    id: uuid.UUID
    exam: ExamCategory
    name: str
    type: ExamConfigType
    description: str
    num_questions: int
    time_limit_minutes: int
    marks_per_correct: float
    negative_per_wrong: float
    entry_fee: int
    schedule_start_at: Optional[datetime] = None
    schedule_end_at: Optional[datetime] = None
    status: ExamStatus


class ExamSummary(CamelModel):
    config: ExamConfigOut
    is_registered: bool = False
    is_completed: bool = False
    best_score: Optional[float] = None


# -- podcasts ---------------------------------------------------------------

class PodcastIn(CamelModel):
    exam: ExamCategory
    subject_id: Optional[uuid.UUID] = None
    topic_id: Optional[uuid.UUID] = None
    title: str = Field(min_length=1)
    description: str = ""
    audio_url: str = Field(min_length=1)
    duration_seconds: int = Field(default=0, ge=0)
    tags: List[str] = []
    is_active: bool = True


class PodcastOut(CamelModel):
    id: uuid.UUID
    exam: ExamCategory
    subject_id: Optional[uuid.UUID] = None
    topic_id: Optional[uuid.UUID] = None
    title: str
    description: str
    audio_url: str
    duration_seconds: int
    tags: CsvList
    is_active: bool


# -- wallet / coupons / referral --------------------------------------------

class WalletSummary(CamelModel):
    balance: int = 0
    lifetime_earned: int = 0
    lifetime_spent: int = 0


class WalletTransactionOut(CamelModel):
    id: uuid.UUID
    amount: int
    type: WalletTxType
    description: str
    created_at: datetime


class CouponIn(CamelModel):
    code: str = Field(min_length=1)
    description: str = ""
    type: str = Field(min_length=1)
    amount: int = Field(ge=0)
    max_uses_total: int = Field(default=0, ge=0)
    max_uses_per_user: int = Field(default=1, ge=0)
    expires_at: Optional[datetime] = None
    is_active: bool = True


class CouponOut(CamelModel):
    id: uuid.UUID
    code: str
    description: str
    type: str
    amount: int
    max_uses_total: int
    max_uses_per_user: int
    expires_at: Optional[datetime] = None
    is_active: bool


class CouponRedeemRequest(CamelModel):
    code: str = Field(min_length=1)


class ReferralSummary(CamelModel):
    referral_code: str
    total_invited: int = 0
    joined: int = 0
    activated: int = 0
    total_earned: int = 0


# -- ai settings ------------------------------------------------------------

class AISettings(CamelModel):
    weakness_min_attempts: int = Field(ge=0)
    weakness_threshold_percent: int = Field(ge=0, le=100)
    strong_threshold_percent: int = Field(ge=0, le=100)
    revision_intervals_days: IntCsvList = Field(min_length=1)
    include_guessed_correct: bool = False
    revision_enabled: bool = True

    @field_validator("revision_intervals_days")
    @classmethod
    def _positive_intervals(cls, value: List[int]) -> List[int]:
        if any(v <= 0 for v in value):
            raise ValueError("revision intervals must be positive")
        return value


# -- leaderboard / feed -----------------------------------------------------

class LeaderboardEntry(CamelModel):
    id: uuid.UUID
    display_name: str
    score: int
    total_correct: int
    total_attempt: int
    day_streak: int = 0
    earned_rewards: int = 0
    avatar_url: Optional[str] = None


class LeaderboardStats(CamelModel):
    total_users: int
    average_accuracy: float
    leaderboard_range: str


class LeaderboardResponse(CamelModel):
    stats: LeaderboardStats
    entries: List[LeaderboardEntry]


class FeedPostOut(CamelModel):
    id: uuid.UUID
    type: str
    title: str
    body: str
    image_url: Optional[str] = None
    tags: CsvList
    created_at: datetime
    author: str
    cta: str
    likes: int
    comments: int
    read_time: str


# -- admin analytics --------------------------------------------------------

class AnalyticsOverview(CamelModel):
    total_users: int
    active_users: int
    questions_answered: int
    average_accuracy: float
    average_study_minutes: float
    total_rewards: int


class AnalyticsPoint(CamelModel):
    date: str
    value: int


class AnalyticsTimeSeries(CamelModel):
    metric: str
    exam: ExamCategory
    range: str
    points: List[AnalyticsPoint]


class SubjectAccuracyItem(CamelModel):
    subject_id: str
    subject_name: str
    accuracy: float


class SubjectAccuracyResponse(CamelModel):
    exam: ExamCategory
    subjects: List[SubjectAccuracyItem]


class WeakTopicItem(CamelModel):
    subject_id: str
    subject_name: str
    topic_id: str
    topic_name: str
    accuracy: float
    attempts: int


class WeakTopicsResponse(CamelModel):
    items: List[WeakTopicItem]


class AdminEventSummary(CamelModel):
    id: str
    name: str
    exam: ExamCategory
    type: ExamConfigType
    start_at: datetime
    registered_count: int
    status: ExamStatus


class AdminEventsResponse(CamelModel):
    items: List[AdminEventSummary]


class AdminReferralSummary(CamelModel):
    range: str
    total_referrals: int
    rewards_paid: int
    new_users: int


# -- admin users ------------------------------------------------------------

class AdminUserOut(CamelModel):
    id: uuid.UUID
    first_name: str
    last_name: str
    username: str
    email: str
    phone_number: str
    status: AdminUserStatus
    role: AdminUserRole
    created_at: datetime
    updated_at: datetime


class AdminUsersMeta(CamelModel):
    page: int
    page_size: int
    total: int


class AdminUserList(CamelModel):
    items: List[AdminUserOut]
    meta: AdminUsersMeta


class AdminUserCreateRequest(CamelModel):
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    username: str = Field(min_length=1)
    email: EmailStr
    phone_number: str = Field(min_length=1)
    role: RoleIn
    status: StatusIn
    password: str = Field(min_length=1)


class AdminUserUpdateRequest(CamelModel):
    """Partial update. Only fields present in the payload are applied."""
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    username: Optional[str] = Field(default=None, min_length=1)
    email: Optional[EmailStr] = None
    phone_number: Optional[str] = None
    role: Optional[RoleIn] = None
    status: Optional[StatusIn] = None
    password: Optional[str] = Field(default=None, min_length=1)

    def changes(self) -> dict:
        """Fields the caller actually sent, with explicit nulls dropped."""
        return {
            name: getattr(self, name)
            for name in self.model_fields_set
            if getattr(self, name) is not None
        }


class AdminBulkStatusRequest(CamelModel):
    user_ids: List[uuid.UUID] = Field(min_length=1)
    status: StatusIn


class AdminBulkStatusResponse(CamelModel):
    updated: int


class AdminBulkDeleteRequest(CamelModel):
    user_ids: List[uuid.UUID] = Field(min_length=1)


class AdminBulkDeleteResponse(CamelModel):
    deleted: int


class AdminInviteRequest(CamelModel):
    email: EmailStr
    role: RoleIn
    message: str = ""


class AdminInviteResponse(CamelModel):
    invited: bool
    expires_at: datetime
