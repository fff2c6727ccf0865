"""Business logic services used by HTTP controllers.

Each service is constructed per request around the request's `Session`
and coordinates one or more repositories. Services raise errors from
`examprep.errors`; the API layer turns those into HTTP responses.
Return values are ORM rows or schema objects ready for a route's
`response_model`.
"""

import logging
import uuid
from datetime import datetime, timedelta
from typing import List, Optional

from sqlmodel import Session

from . import errors, models, repositories, schemas
from .admin_directory import BootstrapAdmin
from .admin_insights import range_to_days
from .auth import TokenService, credentials_match
from .enums import ExamCategory, PracticeSessionStatus, ReferralStatus, UserRole, WalletTxType
from .models import utcnow

logger = logging.getLogger("examprep.services")

REWARD_PER_CORRECT = 10
LEVEL_STEP = 100


def _merge(obj, changes: dict):
    for name, value in changes.items():
        setattr(obj, name, value)
    return obj


class AuthService:
    """Learner and admin sign-in."""

    def __init__(self, session: Session, tokens: TokenService):
        self.session = session
        self.tokens = tokens
        self.users = repositories.UserRepository(session)
        self.profiles = repositories.ExamProfileRepository(session)

    def telegram_login(self, req: schemas.TelegramAuthRequest) -> schemas.AuthResponse:
        """Find the learner by Telegram id or register them on first sight."""
        user = self.users.get_by_telegram_id(req.telegram_id)
        if user is None:
            user = self.users.save(models.User(
                display_name=req.display_name or f"learner-{req.telegram_id}",
                telegram_id=req.telegram_id,
                primary_exam=req.exam,
                role=UserRole.USER,
            ))
            logger.info("learner registered id=%s", user.id)
        profile = self.profiles.get_for(user.id, req.exam)
        if profile is None:
            profile = models.ExamProfile(user_id=user.id, exam=req.exam)
        profile.last_login_at = utcnow()
        self.profiles.save(profile)
        token = self.tokens.generate(user.id, user.role, user.primary_exam)
        return schemas.AuthResponse(access_token=token, user=schemas.UserOut.model_validate(user))


class AdminAuthService:
    """Bootstrap admin sign-in against the configured credentials."""

    def __init__(self, settings, tokens: TokenService, bootstrap: BootstrapAdmin):
        self.settings = settings
        self.tokens = tokens
        self.bootstrap = bootstrap

    def login(self, username: str, password: str) -> Optional[schemas.AuthResponse]:
        """Return a signed admin token, or None when credentials don't match."""
        if not credentials_match(self.settings.ADMIN_USERNAME, self.settings.ADMIN_PASSWORD, username, password):
            return None
        b = self.bootstrap
        token = self.tokens.generate(b.user_id, UserRole(b.role), b.primary_exam)
        user = schemas.UserOut(
            id=b.user_id,
            display_name=b.display_name,
            email=b.email,
            primary_exam=b.primary_exam,
            role=UserRole(b.role),
            created_at=b.created_at,
        )
        return schemas.AuthResponse(access_token=token, user=user)

    def profile(self) -> schemas.AdminProfileOut:
        b = self.bootstrap
        return schemas.AdminProfileOut(
            id=b.user_id,
            display_name=b.display_name,
            email=b.email,
            role=b.role,
            primary_exam=b.primary_exam,
            created_at=b.created_at,
            permissions=list(b.permissions),
        )


class UserService:
    def __init__(self, session: Session):
        self.users = repositories.UserRepository(session)
        self.profiles = repositories.ExamProfileRepository(session)

    def me(self, user_id: uuid.UUID) -> schemas.MeResponse:
        user = self.users.get(user_id)
        if user is None:
            raise errors.UserNotFoundError()
        profile = self.profiles.get_for(user.id, user.primary_exam)
        if profile is None:
            profile_out = schemas.ExamProfileOut(exam=user.primary_exam)
        else:
            profile_out = schemas.ExamProfileOut.model_validate(profile)
        return schemas.MeResponse(user=schemas.UserOut.model_validate(user), exam_profile=profile_out)


class CatalogService:
    """Subjects and topics."""

    def __init__(self, session: Session):
        self.subjects = repositories.SubjectRepository(session)
        self.topics = repositories.TopicRepository(session)

    def list_subjects(self, exam: Optional[ExamCategory] = None) -> List[models.Subject]:
        return self.subjects.list(exam)

    def create_subject(self, req: schemas.SubjectIn) -> models.Subject:
        return self.subjects.save(models.Subject(exam=req.exam, name=req.name.strip()))

    def list_topics(self, subject_id: Optional[uuid.UUID] = None) -> List[models.Topic]:
        return self.topics.list(subject_id)

    def create_topic(self, req: schemas.TopicIn) -> models.Topic:
        if self.subjects.get(req.subject_id) is None:
            raise errors.NotFoundError("subject not found")
        return self.topics.save(models.Topic(subject_id=req.subject_id, name=req.name.strip()))


class QuestionService:
    def __init__(self, session: Session):
        self.questions = repositories.QuestionRepository(session)
        self.topics = repositories.TopicRepository(session)

    def _check_topic(self, subject_id: uuid.UUID, topic_id: uuid.UUID) -> None:
        topic = self.topics.get(topic_id)
        if topic is None or topic.subject_id != subject_id:
            raise errors.ValidationError("topic does not belong to subject")

    def list(self, exam=None, subject_id=None, topic_id=None) -> List[models.Question]:
        return self.questions.list(exam, subject_id, topic_id)

    def get(self, question_id: uuid.UUID) -> models.Question:
        question = self.questions.get(question_id)
        if question is None:
            raise errors.NotFoundError("question not found")
        return question

    def create(self, req: schemas.QuestionIn) -> models.Question:
        self._check_topic(req.subject_id, req.topic_id)
        return self.questions.save(models.Question(**req.model_dump()))

    def update(self, question_id: uuid.UUID, req: schemas.QuestionUpdate) -> models.Question:
        question = self.get(question_id)
        changes = req.model_dump(exclude_unset=True)
        # explanation may be cleared explicitly; other nulls mean "leave as is"
        changes = {k: v for k, v in changes.items() if v is not None or k == "explanation"}
        if "subject_id" in changes or "topic_id" in changes:
            self._check_topic(changes.get("subject_id", question.subject_id), changes.get("topic_id", question.topic_id))
        return self.questions.save(_merge(question, changes))

    def delete(self, question_id: uuid.UUID) -> None:
        question = self.get(question_id)
        if self.questions.is_referenced(question_id):
            raise errors.ConflictError("question has practice history; deactivate it instead")
        self.questions.delete(question)


class RevisionService:
    """Spaced-repetition queue driven by the AI settings intervals."""

    def __init__(self, session: Session):
        self.items = repositories.RevisionRepository(session)
        self.questions = repositories.QuestionRepository(session)
        self.settings = repositories.AISettingsRepository(session)

    def queue(self, user_id: uuid.UUID) -> List[schemas.RevisionItemOut]:
        due = self.items.due(user_id, utcnow())
        questions = self.questions.get_many(item.question_id for item in due)
        return [
            schemas.RevisionItemOut(
                id=item.id,
                question=schemas.QuestionOut.model_validate(questions[item.question_id]),
                next_review_at=item.next_review_at,
                interval_index=item.interval_index,
                times_reviewed=item.times_reviewed,
            )
            for item in due
            if item.question_id in questions
        ]

    def record(self, user_id: uuid.UUID, question_id: uuid.UUID, correct: bool, now: datetime) -> None:
        """Reschedule a question after an answer.

        A wrong answer (re)starts the question at the first interval. A
        right answer advances a queued question and drops it after the
        last interval; unqueued questions answered correctly stay out.
        """
        cfg = self.settings.load()
        if not cfg.revision_enabled:
            return
        intervals = [int(v) for v in models.split_csv(cfg.revision_intervals_days)] or [1]
        item = self.items.get_for(user_id, question_id)
        if not correct:
            if item is None:
                item = models.RevisionItem(user_id=user_id, question_id=question_id, next_review_at=now)
            else:
                item.times_reviewed += 1
            item.interval_index = 0
            item.next_review_at = now + timedelta(days=intervals[0])
            self.items.save(item)
            return
        if item is None:
            return
        item.times_reviewed += 1
        item.interval_index += 1
        if item.interval_index >= len(intervals):
            self.items.delete(item)
            return
        item.next_review_at = now + timedelta(days=intervals[item.interval_index])
        self.items.save(item)


class PracticeService:
    def __init__(self, session: Session):
        self.session = session
        self.sessions = repositories.PracticeSessionRepository(session)
        self.questions = repositories.QuestionRepository(session)
        self.attempts = repositories.AttemptRepository(session)
        self.profiles = repositories.ExamProfileRepository(session)
        self.revision = RevisionService(session)

    def create_session(self, user_id: uuid.UUID, default_exam: ExamCategory,
                       req: schemas.PracticeSessionCreateRequest) -> models.PracticeSession:
        exam = req.exam or default_exam
        picked = self.questions.pick_random(
            exam,
            req.num_questions,
            subject_ids=req.subject_ids,
            topic_ids=req.topic_ids,
            difficulty_levels=req.difficulty_levels,
        )
        practice = models.PracticeSession(
            user_id=user_id,
            mode=req.mode,
            exam=exam,
            total_questions_planned=len(picked),
            time_limit_minutes=req.time_limit_minutes,
        )
        self.session.add(practice)
        for index, question in enumerate(picked, start=1):
            self.session.add(models.PracticeSessionQuestion(
                session_id=practice.id,
                question_id=question.id,
                sequence_index=index,
            ))
        self.session.commit()
        self.session.refresh(practice)
        logger.info("practice session started id=%s questions=%d", practice.id, len(picked))
        return practice

    def list_sessions(self, user_id: uuid.UUID) -> List[models.PracticeSession]:
        return self.sessions.list_for_user(user_id)

    def _owned(self, session_id: uuid.UUID, user_id: uuid.UUID) -> models.PracticeSession:
        practice = self.sessions.get(session_id)
        if practice is None or practice.user_id != user_id:
            raise errors.NotFoundError("practice session not found")
        return practice

    def _question_out(self, sq: models.PracticeSessionQuestion, question: models.Question):
        return schemas.PracticeSessionQuestionOut(
            id=sq.id,
            sequence_index=sq.sequence_index,
            question=schemas.QuestionOut.model_validate(question),
            selected_option=sq.selected_option,
            is_correct=sq.is_correct,
            time_taken_ms=sq.time_taken_ms,
            answered_at=sq.answered_at,
        )

    def detail(self, session_id: uuid.UUID, user_id: uuid.UUID) -> schemas.PracticeSessionDetail:
        practice = self._owned(session_id, user_id)
        rows = self.sessions.list_questions(practice.id)
        questions = self.questions.get_many(sq.question_id for sq in rows)
        return schemas.PracticeSessionDetail(
            session=schemas.PracticeSessionOut.model_validate(practice),
            questions=[self._question_out(sq, questions[sq.question_id]) for sq in rows if sq.question_id in questions],
        )

    def answer(self, session_id: uuid.UUID, user_id: uuid.UUID,
               req: schemas.PracticeAnswerRequest) -> schemas.PracticeSessionQuestionOut:
        practice = self._owned(session_id, user_id)
        sq = self.sessions.get_question(req.session_question_id)
        if sq is None or sq.session_id != practice.id:
            raise errors.NotFoundError("session question not found")
        if practice.status != PracticeSessionStatus.IN_PROGRESS:
            raise errors.SessionClosedError()
        if sq.answered_at is not None:
            raise errors.AlreadyAnsweredError()
        question = self.questions.get(sq.question_id)
        if question is None:
            raise errors.NotFoundError("question not found")

        now = utcnow()
        correct = question.correct_option == req.selected_option
        # a concurrent answer may have landed since the check above
        if not self.sessions.mark_answered(sq.id, req.selected_option, correct, req.time_taken_ms, now):
            self.session.rollback()
            raise errors.AlreadyAnsweredError()
        self.session.add(models.QuestionAttempt(
            user_id=user_id,
            question_id=question.id,
            session_id=practice.id,
            exam=practice.exam,
            selected_option=req.selected_option,
            is_correct=correct,
            time_taken_ms=req.time_taken_ms,
            created_at=now,
        ))
        self._bump_profile(user_id, practice.exam, correct, req.time_taken_ms, now)
        self.session.commit()

        if self.sessions.count_unanswered(practice.id) == 0:
            practice.status = PracticeSessionStatus.COMPLETED
            practice.completed_at = now
            self.sessions.save(practice)
            logger.info("practice session completed id=%s", practice.id)

        self.revision.record(user_id, question.id, correct, now)
        self.session.refresh(sq)
        return self._question_out(sq, question)

    def _bump_profile(self, user_id: uuid.UUID, exam: ExamCategory, correct: bool,
                      time_taken_ms: Optional[int], now: datetime) -> None:
        profile = self.profiles.get_for(user_id, exam)
        if profile is None:
            profile = models.ExamProfile(user_id=user_id, exam=exam)
        profile.total_questions += 1
        if correct:
            profile.total_correct += 1
        profile.total_time_seconds += (time_taken_ms or 0) // 1000
        profile.overall_level = 1 + profile.total_correct // LEVEL_STEP
        last_day = profile.last_practice_at.date() if profile.last_practice_at else None
        today = now.date()
        if last_day != today:
            if last_day == today - timedelta(days=1):
                profile.current_streak_days += 1
            else:
                profile.current_streak_days = 1
        profile.longest_streak_days = max(profile.longest_streak_days, profile.current_streak_days)
        profile.last_practice_at = now
        self.session.add(profile)


class ExamService:
    def __init__(self, session: Session):
        self.configs = repositories.ExamConfigRepository(session)

    def list(self, exam: Optional[ExamCategory] = None) -> List[models.ExamConfig]:
        return self.configs.list(exam)

    def get(self, config_id: uuid.UUID) -> models.ExamConfig:
        config = self.configs.get(config_id)
        if config is None:
            raise errors.NotFoundError("exam not found")
        return config

    def create(self, req: schemas.ExamConfigIn) -> models.ExamConfig:
        return self.configs.save(models.ExamConfig(**req.model_dump()))

    def update(self, config_id: uuid.UUID, req: schemas.ExamConfigUpdate) -> models.ExamConfig:
        config = self.get(config_id)
        changes = req.model_dump(exclude_unset=True)
        changes = {k: v for k, v in changes.items() if v is not None or k.startswith("schedule_")}
        return self.configs.save(_merge(config, changes))

    def delete(self, config_id: uuid.UUID) -> None:
        self.configs.delete(self.get(config_id))

    def events(self, exam: Optional[ExamCategory] = None) -> List[schemas.ExamSummary]:
        """Published (non-draft) exams as learner-facing summaries."""
        return [
            schemas.ExamSummary(config=schemas.ExamConfigOut.model_validate(config))
            for config in self.configs.list_published(exam)
        ]


class PodcastService:
    def __init__(self, session: Session):
        self.podcasts = repositories.PodcastRepository(session)

    def list(self, active_only: bool = False, subject_id=None, topic_id=None) -> List[models.PodcastEpisode]:
        return self.podcasts.list(active_only, subject_id, topic_id)

    def get(self, episode_id: uuid.UUID, active_only: bool = False) -> models.PodcastEpisode:
        episode = self.podcasts.get(episode_id)
        if episode is None or (active_only and not episode.is_active):
            raise errors.NotFoundError("podcast not found")
        return episode

    @staticmethod
    def _fields(req: schemas.PodcastIn) -> dict:
        data = req.model_dump()
        data["tags"] = models.join_csv(t.strip() for t in data["tags"] if t.strip())
        return data

    def create(self, req: schemas.PodcastIn) -> models.PodcastEpisode:
        return self.podcasts.save(models.PodcastEpisode(**self._fields(req)))

    def update(self, episode_id: uuid.UUID, req: schemas.PodcastIn) -> models.PodcastEpisode:
        episode = self.get(episode_id)
        return self.podcasts.save(_merge(episode, self._fields(req)))

    def delete(self, episode_id: uuid.UUID) -> None:
        self.podcasts.delete(self.get(episode_id))


class WalletService:
    def __init__(self, session: Session):
        self.ledger = repositories.WalletRepository(session)

    def summary(self, user_id: uuid.UUID) -> schemas.WalletSummary:
        earned, spent = self.ledger.totals(user_id)
        return schemas.WalletSummary(balance=earned - spent, lifetime_earned=earned, lifetime_spent=spent)

    def transactions(self, user_id: uuid.UUID) -> List[models.WalletTransaction]:
        return self.ledger.list_for_user(user_id)


class CouponService:
    def __init__(self, session: Session):
        self.session = session
        self.coupons = repositories.CouponRepository(session)

    def list(self) -> List[models.Coupon]:
        return self.coupons.list()

    def get(self, coupon_id: uuid.UUID) -> models.Coupon:
        coupon = self.coupons.get(coupon_id)
        if coupon is None:
            raise errors.NotFoundError("coupon not found")
        return coupon

    def _check_code(self, code: str, exclude: Optional[uuid.UUID] = None) -> None:
        existing = self.coupons.get_by_code(code)
        if existing is not None and existing.id != exclude:
            raise errors.DuplicateCouponCodeError()

    @staticmethod
    def _fields(req: schemas.CouponIn) -> dict:
        data = req.model_dump()
        data["code"] = data["code"].strip().upper()
        return data

    def create(self, req: schemas.CouponIn) -> models.Coupon:
        data = self._fields(req)
        self._check_code(data["code"])
        return self.coupons.save(models.Coupon(**data))

    def update(self, coupon_id: uuid.UUID, req: schemas.CouponIn) -> models.Coupon:
        coupon = self.get(coupon_id)
        data = self._fields(req)
        self._check_code(data["code"], exclude=coupon.id)
        return self.coupons.save(_merge(coupon, data))

    def delete(self, coupon_id: uuid.UUID) -> None:
        self.coupons.delete(self.get(coupon_id))

    def redeem(self, user_id: uuid.UUID, code: str) -> schemas.WalletSummary:
        """Credit the coupon amount to the user's wallet.

        Limits of 0 mean unlimited. Raises `NotFoundError` for an unknown
        code and `CouponUnavailableError` when the coupon can't be used.
        """
        coupon = self.coupons.get_by_code(code)
        if coupon is None:
            raise errors.NotFoundError("coupon not found")
        if not coupon.is_active:
            raise errors.CouponUnavailableError("coupon is inactive")
        now = utcnow()
        if coupon.expires_at is not None and coupon.expires_at <= now:
            raise errors.CouponUnavailableError("coupon has expired")
        if coupon.max_uses_total and self.coupons.count_redemptions(coupon.id) >= coupon.max_uses_total:
            raise errors.CouponUnavailableError("coupon usage limit reached")
        if coupon.max_uses_per_user and self.coupons.count_redemptions(coupon.id, user_id) >= coupon.max_uses_per_user:
            raise errors.CouponUnavailableError("coupon already redeemed")
        self.session.add(models.CouponRedemption(coupon_id=coupon.id, user_id=user_id, redeemed_at=now))
        self.session.add(models.WalletTransaction(
            user_id=user_id,
            amount=coupon.amount,
            type=WalletTxType.COUPON,
            description=f"Coupon {coupon.code}",
            created_at=now,
        ))
        self.session.commit()
        logger.info("coupon redeemed code=%s user=%s", coupon.code, user_id)
        return WalletService(self.session).summary(user_id)


class ReferralService:
    def __init__(self, session: Session):
        self.referrals = repositories.ReferralRepository(session)
        self.ledger = repositories.WalletRepository(session)

    @staticmethod
    def code_for(user_id: uuid.UUID) -> str:
        return user_id.hex[:8].upper()

    def summary(self, user_id: uuid.UUID) -> schemas.ReferralSummary:
        counts = self.referrals.counts(user_id)
        return schemas.ReferralSummary(
            referral_code=self.code_for(user_id),
            total_invited=sum(counts.values()),
            joined=counts[ReferralStatus.JOINED],
            activated=counts[ReferralStatus.ACTIVATED],
            total_earned=self.ledger.sum_by_type(WalletTxType.REFERRAL, user_id=user_id),
        )


class AISettingsService:
    def __init__(self, session: Session):
        self.repo = repositories.AISettingsRepository(session)

    def get(self) -> schemas.AISettings:
        return schemas.AISettings.model_validate(self.repo.load())

    def update(self, req: schemas.AISettings) -> schemas.AISettings:
        record = self.repo.load()
        data = req.model_dump()
        data["revision_intervals_days"] = models.join_csv(data["revision_intervals_days"])
        return schemas.AISettings.model_validate(self.repo.save(_merge(record, data)))


class AnalyticsService:
    """Dashboard overview computed from recorded attempts and the ledger."""

    def __init__(self, session: Session):
        self.users = repositories.UserRepository(session)
        self.attempts = repositories.AttemptRepository(session)
        self.ledger = repositories.WalletRepository(session)

    def overview(self, exam: Optional[ExamCategory] = None, window: Optional[str] = None) -> schemas.AnalyticsOverview:
        since = utcnow() - timedelta(days=range_to_days(window or "7d"))
        attempts, correct, active, time_ms = self.attempts.totals(since=since, exam=exam)
        accuracy = round(correct / attempts, 4) if attempts else 0.0
        study_minutes = round(time_ms / 60000 / active, 2) if active else 0.0
        return schemas.AnalyticsOverview(
            total_users=self.users.count_learners(),
            active_users=active,
            questions_answered=attempts,
            average_accuracy=accuracy,
            average_study_minutes=study_minutes,
            total_rewards=self.ledger.sum_by_type(WalletTxType.REWARD, since=since),
        )


class LeaderboardService:
    def __init__(self, session: Session):
        self.users = repositories.UserRepository(session)
        self.attempts = repositories.AttemptRepository(session)
        self.profiles = repositories.ExamProfileRepository(session)

    def board(self, limit: int = 20) -> schemas.LeaderboardResponse:
        limit = min(max(limit, 1), 100)
        rows = self.attempts.leaderboard(limit)
        user_ids = [row[0] for row in rows]
        names = self.users.display_names(user_ids)
        streaks = self.profiles.streaks(user_ids)
        entries = [
            schemas.LeaderboardEntry(
                id=user_id,
                display_name=names.get(user_id, ""),
                score=correct or 0,
                total_correct=correct or 0,
                total_attempt=attempts,
                day_streak=streaks.get(user_id, 0),
                earned_rewards=(correct or 0) * REWARD_PER_CORRECT,
            )
            for user_id, correct, attempts in rows
        ]
        total, total_correct, users, _ = self.attempts.totals()
        stats = schemas.LeaderboardStats(
            total_users=users,
            average_accuracy=round(total_correct / total, 4) if total else 0.0,
            leaderboard_range=f"Top {limit}",
        )
        return schemas.LeaderboardResponse(stats=stats, entries=entries)


class FeedService:
    def __init__(self, session: Session):
        self.posts = repositories.FeedRepository(session)

    def list(self) -> List[models.FeedPost]:
        return self.posts.list()
