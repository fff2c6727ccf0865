"""Learner profile, catalogue, leaderboard and feed endpoints."""

import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from ... import schemas, services
from ...auth import Identity, require_user
from ...database import get_session
from ...enums import ExamCategory

router = APIRouter(tags=["learner"])


@router.get("/me", response_model=schemas.MeResponse)
def me(user: Identity = Depends(require_user), db: Session = Depends(get_session)):
    return services.UserService(db).me(user.user_id)


@router.get("/subjects", response_model=List[schemas.SubjectOut])
def list_subjects(
    exam: Optional[ExamCategory] = None,
    user: Identity = Depends(require_user),
    db: Session = Depends(get_session),
):
    return services.CatalogService(db).list_subjects(exam)


@router.get("/topics", response_model=List[schemas.TopicOut])
def list_topics(
    subject_id: uuid.UUID = Query(..., alias="subjectId"),
    user: Identity = Depends(require_user),
    db: Session = Depends(get_session),
):
    return services.CatalogService(db).list_topics(subject_id)


@router.get("/leaderboard", response_model=schemas.LeaderboardResponse)
def leaderboard(limit: int = 20, user: Identity = Depends(require_user), db: Session = Depends(get_session)):
    """Rank learners by correct answers; `limit` is clamped to 1..100."""
    return services.LeaderboardService(db).board(limit)


@router.get("/feed", response_model=List[schemas.FeedPostOut])
def feed(user: Identity = Depends(require_user), db: Session = Depends(get_session)):
    return services.FeedService(db).list()
