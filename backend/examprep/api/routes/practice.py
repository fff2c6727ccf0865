"""Practice sessions and the revision queue."""

import uuid
from typing import List

from fastapi import APIRouter, Depends
from sqlmodel import Session

from ... import schemas, services
from ...auth import Identity, require_user
from ...database import get_session

router = APIRouter(tags=["practice"])


@router.post("/practice/sessions", response_model=schemas.PracticeSessionOut, status_code=201)
def create_session(
    payload: schemas.PracticeSessionCreateRequest,
    user: Identity = Depends(require_user),
    db: Session = Depends(get_session),
):
    """Start a session with up to `numQuestions` random active questions.

    The exam defaults to the one carried by the caller's token.
    """
    return services.PracticeService(db).create_session(user.user_id, user.exam, payload)


@router.get("/practice/sessions", response_model=List[schemas.PracticeSessionOut])
def list_sessions(user: Identity = Depends(require_user), db: Session = Depends(get_session)):
    return services.PracticeService(db).list_sessions(user.user_id)


@router.get("/practice/sessions/{session_id}", response_model=schemas.PracticeSessionDetail)
def get_session_detail(session_id: uuid.UUID, user: Identity = Depends(require_user), db: Session = Depends(get_session)):
    return services.PracticeService(db).detail(session_id, user.user_id)


@router.post("/practice/sessions/{session_id}/answers", response_model=schemas.PracticeSessionQuestionOut)
def answer_question(
    session_id: uuid.UUID,
    payload: schemas.PracticeAnswerRequest,
    user: Identity = Depends(require_user),
    db: Session = Depends(get_session),
):
    """Record one answer.

    Returns 409 if the question was already answered or the session is
    closed; the session completes when its last question is answered.
    """
    return services.PracticeService(db).answer(session_id, user.user_id, payload)


@router.get("/revision/queue", response_model=List[schemas.RevisionItemOut])
def revision_queue(user: Identity = Depends(require_user), db: Session = Depends(get_session)):
    return services.RevisionService(db).queue(user.user_id)
