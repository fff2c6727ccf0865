"""Learner-facing podcasts and events."""

import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from ... import schemas, services
from ...auth import Identity, require_user
from ...database import get_session
from ...enums import ExamCategory

router = APIRouter(tags=["content"])


@router.get("/podcasts", response_model=List[schemas.PodcastOut])
def list_podcasts(
    subject_id: Optional[uuid.UUID] = Query(None, alias="subjectId"),
    topic_id: Optional[uuid.UUID] = Query(None, alias="topicId"),
    user: Identity = Depends(require_user),
    db: Session = Depends(get_session),
):
    return services.PodcastService(db).list(active_only=True, subject_id=subject_id, topic_id=topic_id)


@router.get("/podcasts/{episode_id}", response_model=schemas.PodcastOut)
def get_podcast(episode_id: uuid.UUID, user: Identity = Depends(require_user), db: Session = Depends(get_session)):
    return services.PodcastService(db).get(episode_id, active_only=True)


@router.get("/events", response_model=List[schemas.ExamSummary])
def list_events(
    exam: Optional[ExamCategory] = None,
    user: Identity = Depends(require_user),
    db: Session = Depends(get_session),
):
    return services.ExamService(db).events(exam)
