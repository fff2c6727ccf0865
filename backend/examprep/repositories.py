"""Repository layer for data access.

Repositories encapsulate database queries for a single aggregate and
keep SQLModel/SQLAlchemy usage out of services and controllers. Each
repository is bound to the request's `Session`; callers decide when to
commit by going through `save`/`delete`.
"""

import uuid
from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy import case, update
from sqlmodel import Session, col, func, select

from . import models
from .enums import ExamCategory, ExamStatus, ReferralStatus, UserRole, WalletTxType


class BaseRepository:
    model = None

    def __init__(self, session: Session):
        self.session = session

    def get(self, obj_id):
        return self.session.get(self.model, obj_id)

    def save(self, obj):
        """Add or update `obj`, commit and refresh it."""
        self.session.add(obj)
        self.session.commit()
        self.session.refresh(obj)
        return obj

    def delete(self, obj) -> None:
        self.session.delete(obj)
        self.session.commit()


class UserRepository(BaseRepository):
    model = models.User

    def get_by_telegram_id(self, telegram_id: str) -> Optional[models.User]:
        stmt = select(models.User).where(models.User.telegram_id == telegram_id)
        return self.session.exec(stmt).first()

    def count_learners(self) -> int:
        stmt = select(func.count()).select_from(models.User).where(models.User.role == UserRole.USER)
        return self.session.exec(stmt).one()

    def display_names(self, user_ids: Iterable[uuid.UUID]) -> dict:
        ids = list(user_ids)
        if not ids:
            return {}
        stmt = select(models.User.id, models.User.display_name).where(col(models.User.id).in_(ids))
        return {uid: name for uid, name in self.session.exec(stmt).all()}


class ExamProfileRepository(BaseRepository):
    model = models.ExamProfile

    def get_for(self, user_id: uuid.UUID, exam: ExamCategory) -> Optional[models.ExamProfile]:
        stmt = select(models.ExamProfile).where(
            models.ExamProfile.user_id == user_id,
            models.ExamProfile.exam == exam,
        )
        return self.session.exec(stmt).first()

    def streaks(self, user_ids: Iterable[uuid.UUID]) -> dict:
        """Return the best current streak per user across exams."""
        ids = list(user_ids)
        if not ids:
            return {}
        stmt = (
            select(models.ExamProfile.user_id, func.max(models.ExamProfile.current_streak_days))
            .where(col(models.ExamProfile.user_id).in_(ids))
            .group_by(models.ExamProfile.user_id)
        )
        return {uid: streak or 0 for uid, streak in self.session.exec(stmt).all()}


class SubjectRepository(BaseRepository):
    model = models.Subject

    def list(self, exam: Optional[ExamCategory] = None) -> List[models.Subject]:
        stmt = select(models.Subject)
        if exam is not None:
            stmt = stmt.where(models.Subject.exam == exam)
        return self.session.exec(stmt.order_by(models.Subject.name)).all()


class TopicRepository(BaseRepository):
    model = models.Topic

    def list(self, subject_id: Optional[uuid.UUID] = None) -> List[models.Topic]:
        stmt = select(models.Topic)
        if subject_id is not None:
            stmt = stmt.where(models.Topic.subject_id == subject_id)
        return self.session.exec(stmt.order_by(models.Topic.name)).all()


class QuestionRepository(BaseRepository):
    model = models.Question

    def list(
        self,
        exam: Optional[ExamCategory] = None,
        subject_id: Optional[uuid.UUID] = None,
        topic_id: Optional[uuid.UUID] = None,
    ) -> List[models.Question]:
        stmt = select(models.Question)
        if exam is not None:
            stmt = stmt.where(models.Question.exam == exam)
        if subject_id is not None:
            stmt = stmt.where(models.Question.subject_id == subject_id)
        if topic_id is not None:
            stmt = stmt.where(models.Question.topic_id == topic_id)
        return self.session.exec(stmt.order_by(models.Question.question_text)).all()

    def pick_random(
        self,
        exam: ExamCategory,
        limit: int,
        subject_ids: Optional[List[uuid.UUID]] = None,
        topic_ids: Optional[List[uuid.UUID]] = None,
        difficulty_levels: Optional[List[int]] = None,
    ) -> List[models.Question]:
        """Return up to `limit` active questions in random order."""
        stmt = select(models.Question).where(
            models.Question.exam == exam,
            models.Question.is_active == True,  # noqa: E712
        )
        if subject_ids:
            stmt = stmt.where(col(models.Question.subject_id).in_(subject_ids))
        if topic_ids:
            stmt = stmt.where(col(models.Question.topic_id).in_(topic_ids))
        if difficulty_levels:
            stmt = stmt.where(col(models.Question.difficulty_level).in_(difficulty_levels))
        stmt = stmt.order_by(func.random()).limit(limit)
        return self.session.exec(stmt).all()

    def get_many(self, question_ids: Iterable[uuid.UUID]) -> dict:
        ids = list(question_ids)
        if not ids:
            return {}
        stmt = select(models.Question).where(col(models.Question.id).in_(ids))
        return {q.id: q for q in self.session.exec(stmt).all()}

    def is_referenced(self, question_id: uuid.UUID) -> bool:
        """Return True if any session, attempt or revision item points at the question."""
        for table in (models.PracticeSessionQuestion, models.QuestionAttempt, models.RevisionItem):
            stmt = select(table.id).where(table.question_id == question_id).limit(1)
            if self.session.exec(stmt).first() is not None:
                return True
        return False


class PracticeSessionRepository(BaseRepository):
    model = models.PracticeSession

    def list_for_user(self, user_id: uuid.UUID) -> List[models.PracticeSession]:
        stmt = (
            select(models.PracticeSession)
            .where(models.PracticeSession.user_id == user_id)
            .order_by(col(models.PracticeSession.started_at).desc())
        )
        return self.session.exec(stmt).all()

    def list_questions(self, session_id: uuid.UUID) -> List[models.PracticeSessionQuestion]:
        stmt = (
            select(models.PracticeSessionQuestion)
            .where(models.PracticeSessionQuestion.session_id == session_id)
            .order_by(models.PracticeSessionQuestion.sequence_index)
        )
        return self.session.exec(stmt).all()

    def get_question(self, session_question_id: uuid.UUID) -> Optional[models.PracticeSessionQuestion]:
        return self.session.get(models.PracticeSessionQuestion, session_question_id)

    def mark_answered(self, session_question_id: uuid.UUID, selected_option: int, is_correct: bool,
                      time_taken_ms: Optional[int], answered_at: datetime) -> bool:
        """Record the answer only if the row is still unanswered.

        The check and the write are one UPDATE, so of two concurrent
        answers exactly one gets True. Not committed here.
        """
        stmt = (
            update(models.PracticeSessionQuestion)
            .where(
                models.PracticeSessionQuestion.id == session_question_id,
                col(models.PracticeSessionQuestion.answered_at).is_(None),
            )
            .values(
                selected_option=selected_option,
                is_correct=is_correct,
                time_taken_ms=time_taken_ms,
                answered_at=answered_at,
            )
        )
        result = self.session.connection().execute(stmt)
        return result.rowcount == 1

    def count_unanswered(self, session_id: uuid.UUID) -> int:
        stmt = select(func.count()).select_from(models.PracticeSessionQuestion).where(
            models.PracticeSessionQuestion.session_id == session_id,
            col(models.PracticeSessionQuestion.answered_at).is_(None),
        )
        return self.session.exec(stmt).one()


class AttemptRepository(BaseRepository):
    model = models.QuestionAttempt

    def leaderboard(self, limit: int) -> list:
        """Rows of (user_id, correct, attempts) ranked by correct answers."""
        correct = func.sum(case((col(models.QuestionAttempt.is_correct) == True, 1), else_=0))  # noqa: E712
        stmt = (
            select(models.QuestionAttempt.user_id, correct.label("correct"), func.count().label("attempts"))
            .group_by(models.QuestionAttempt.user_id)
            .order_by(correct.desc(), func.count().desc())
            .limit(limit)
        )
        return self.session.exec(stmt).all()

    def totals(self, since: Optional[datetime] = None, exam: Optional[ExamCategory] = None):
        """Return (attempts, correct, distinct users, total time ms) in the window."""
        stmt = select(
            func.count(),
            func.sum(case((col(models.QuestionAttempt.is_correct) == True, 1), else_=0)),  # noqa: E712
            func.count(func.distinct(models.QuestionAttempt.user_id)),
            func.sum(models.QuestionAttempt.time_taken_ms),
        )
        if since is not None:
            stmt = stmt.where(models.QuestionAttempt.created_at >= since)
        if exam is not None:
            stmt = stmt.where(models.QuestionAttempt.exam == exam)
        attempts, correct, users, time_ms = self.session.exec(stmt).one()
        return attempts or 0, correct or 0, users or 0, time_ms or 0


class RevisionRepository(BaseRepository):
    model = models.RevisionItem

    def get_for(self, user_id: uuid.UUID, question_id: uuid.UUID) -> Optional[models.RevisionItem]:
        stmt = select(models.RevisionItem).where(
            models.RevisionItem.user_id == user_id,
            models.RevisionItem.question_id == question_id,
        )
        return self.session.exec(stmt).first()

    def due(self, user_id: uuid.UUID, now: datetime) -> List[models.RevisionItem]:
        stmt = (
            select(models.RevisionItem)
            .where(models.RevisionItem.user_id == user_id, models.RevisionItem.next_review_at <= now)
            .order_by(models.RevisionItem.next_review_at)
        )
        return self.session.exec(stmt).all()


class ExamConfigRepository(BaseRepository):
    model = models.ExamConfig

    def list(self, exam: Optional[ExamCategory] = None) -> List[models.ExamConfig]:
        stmt = select(models.ExamConfig)
        if exam is not None:
            stmt = stmt.where(models.ExamConfig.exam == exam)
        return self.session.exec(stmt.order_by(models.ExamConfig.name)).all()

    def list_published(self, exam: Optional[ExamCategory] = None) -> List[models.ExamConfig]:
        stmt = select(models.ExamConfig).where(models.ExamConfig.status != ExamStatus.DRAFT)
        if exam is not None:
            stmt = stmt.where(models.ExamConfig.exam == exam)
        stmt = stmt.order_by(col(models.ExamConfig.schedule_start_at).asc().nulls_last(), models.ExamConfig.name)
        return self.session.exec(stmt).all()


class PodcastRepository(BaseRepository):
    model = models.PodcastEpisode

    def list(
        self,
        active_only: bool = False,
        subject_id: Optional[uuid.UUID] = None,
        topic_id: Optional[uuid.UUID] = None,
    ) -> List[models.PodcastEpisode]:
        stmt = select(models.PodcastEpisode)
        if active_only:
            stmt = stmt.where(models.PodcastEpisode.is_active == True)  # noqa: E712
        if subject_id is not None:
            stmt = stmt.where(models.PodcastEpisode.subject_id == subject_id)
        if topic_id is not None:
            stmt = stmt.where(models.PodcastEpisode.topic_id == topic_id)
        return self.session.exec(stmt.order_by(models.PodcastEpisode.title)).all()


class WalletRepository(BaseRepository):
    model = models.WalletTransaction

    def list_for_user(self, user_id: uuid.UUID) -> List[models.WalletTransaction]:
        stmt = (
            select(models.WalletTransaction)
            .where(models.WalletTransaction.user_id == user_id)
            .order_by(col(models.WalletTransaction.created_at).desc())
        )
        return self.session.exec(stmt).all()

    def totals(self, user_id: uuid.UUID):
        """Return (credits, debits) where debits are reported as a positive number."""
        amount = models.WalletTransaction.amount
        stmt = select(
            func.sum(case((amount > 0, amount), else_=0)),
            func.sum(case((amount < 0, -amount), else_=0)),
        ).where(models.WalletTransaction.user_id == user_id)
        earned, spent = self.session.exec(stmt).one()
        return earned or 0, spent or 0

    def sum_by_type(self, tx_type: WalletTxType, user_id: Optional[uuid.UUID] = None, since: Optional[datetime] = None) -> int:
        stmt = select(func.sum(models.WalletTransaction.amount)).where(models.WalletTransaction.type == tx_type)
        if user_id is not None:
            stmt = stmt.where(models.WalletTransaction.user_id == user_id)
        if since is not None:
            stmt = stmt.where(models.WalletTransaction.created_at >= since)
        return self.session.exec(stmt).one() or 0


class CouponRepository(BaseRepository):
    model = models.Coupon

    def list(self) -> List[models.Coupon]:
        return self.session.exec(select(models.Coupon).order_by(models.Coupon.code)).all()

    def get_by_code(self, code: str) -> Optional[models.Coupon]:
        stmt = select(models.Coupon).where(func.upper(models.Coupon.code) == code.strip().upper())
        return self.session.exec(stmt).first()

    def count_redemptions(self, coupon_id: uuid.UUID, user_id: Optional[uuid.UUID] = None) -> int:
        stmt = select(func.count()).select_from(models.CouponRedemption).where(
            models.CouponRedemption.coupon_id == coupon_id
        )
        if user_id is not None:
            stmt = stmt.where(models.CouponRedemption.user_id == user_id)
        return self.session.exec(stmt).one()


class ReferralRepository(BaseRepository):
    model = models.Referral

    def counts(self, referrer_id: uuid.UUID) -> dict:
        stmt = (
            select(models.Referral.status, func.count())
            .where(models.Referral.referrer_id == referrer_id)
            .group_by(models.Referral.status)
        )
        out = {status: 0 for status in ReferralStatus}
        for status, n in self.session.exec(stmt).all():
            out[ReferralStatus(status)] = n
        return out


class AISettingsRepository(BaseRepository):
    model = models.AISettingsRecord

    def load(self) -> models.AISettingsRecord:
        """Return the settings row, creating it with defaults on first use."""
        record = self.session.get(models.AISettingsRecord, 1)
        if record is None:
            record = self.save(models.AISettingsRecord(id=1))
        return record


class FeedRepository(BaseRepository):
    model = models.FeedPost

    def list(self, limit: int = 50) -> List[models.FeedPost]:
        stmt = select(models.FeedPost).order_by(col(models.FeedPost.created_at).desc()).limit(limit)
        return self.session.exec(stmt).all()
