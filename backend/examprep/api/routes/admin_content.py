"""Admin CRUD over the question bank, exams, podcasts, coupons and AI settings."""

import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlmodel import Session

from ... import schemas, services
from ...auth import require_admin
from ...database import get_session
from ...enums import ExamCategory

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


# subjects / topics

@router.get("/subjects", response_model=List[schemas.SubjectOut])
def list_subjects(exam: Optional[ExamCategory] = None, db: Session = Depends(get_session)):
    return services.CatalogService(db).list_subjects(exam)


@router.post("/subjects", response_model=schemas.SubjectOut, status_code=201)
def create_subject(payload: schemas.SubjectIn, db: Session = Depends(get_session)):
    return services.CatalogService(db).create_subject(payload)


@router.get("/topics", response_model=List[schemas.TopicOut])
def list_topics(subject_id: Optional[uuid.UUID] = Query(None, alias="subjectId"), db: Session = Depends(get_session)):
    return services.CatalogService(db).list_topics(subject_id)


@router.post("/topics", response_model=schemas.TopicOut, status_code=201)
def create_topic(payload: schemas.TopicIn, db: Session = Depends(get_session)):
    return services.CatalogService(db).create_topic(payload)


# questions

@router.get("/questions", response_model=List[schemas.QuestionOut])
def list_questions(
    exam: Optional[ExamCategory] = None,
    subject_id: Optional[uuid.UUID] = Query(None, alias="subjectId"),
    topic_id: Optional[uuid.UUID] = Query(None, alias="topicId"),
    db: Session = Depends(get_session),
):
    return services.QuestionService(db).list(exam, subject_id, topic_id)


@router.post("/questions", response_model=schemas.QuestionOut, status_code=201)
def create_question(payload: schemas.QuestionIn, db: Session = Depends(get_session)):
    return services.QuestionService(db).create(payload)


@router.get("/questions/{question_id}", response_model=schemas.QuestionOut)
def get_question(question_id: uuid.UUID, db: Session = Depends(get_session)):
    return services.QuestionService(db).get(question_id)


@router.patch("/questions/{question_id}", response_model=schemas.QuestionOut)
def update_question(question_id: uuid.UUID, payload: schemas.QuestionUpdate, db: Session = Depends(get_session)):
    """Merge only the supplied fields into the question."""
    return services.QuestionService(db).update(question_id, payload)


@router.delete("/questions/{question_id}", status_code=204)
def delete_question(question_id: uuid.UUID, db: Session = Depends(get_session)):
    services.QuestionService(db).delete(question_id)
    return Response(status_code=204)


# exams

@router.get("/exams", response_model=List[schemas.ExamConfigOut])
def list_exams(exam: Optional[ExamCategory] = None, db: Session = Depends(get_session)):
    return services.ExamService(db).list(exam)


@router.post("/exams", response_model=schemas.ExamConfigOut, status_code=201)
def create_exam(payload: schemas.ExamConfigIn, db: Session = Depends(get_session)):
    """New exams start as DRAFT and are hidden from learners until published."""
    return services.ExamService(db).create(payload)


@router.get("/exams/{config_id}", response_model=schemas.ExamConfigOut)
def get_exam(config_id: uuid.UUID, db: Session = Depends(get_session)):
    return services.ExamService(db).get(config_id)


@router.patch("/exams/{config_id}", response_model=schemas.ExamConfigOut)
def update_exam(config_id: uuid.UUID, payload: schemas.ExamConfigUpdate, db: Session = Depends(get_session)):
    return services.ExamService(db).update(config_id, payload)


@router.delete("/exams/{config_id}", status_code=204)
def delete_exam(config_id: uuid.UUID, db: Session = Depends(get_session)):
    services.ExamService(db).delete(config_id)
    return Response(status_code=204)


# podcasts

@router.get("/podcasts", response_model=List[schemas.PodcastOut])
def list_podcasts(db: Session = Depends(get_session)):
    return services.PodcastService(db).list()


@router.post("/podcasts", response_model=schemas.PodcastOut, status_code=201)
def create_podcast(payload: schemas.PodcastIn, db: Session = Depends(get_session)):
    return services.PodcastService(db).create(payload)


@router.get("/podcasts/{episode_id}", response_model=schemas.PodcastOut)
def get_podcast(episode_id: uuid.UUID, db: Session = Depends(get_session)):
    return services.PodcastService(db).get(episode_id)


@router.patch("/podcasts/{episode_id}", response_model=schemas.PodcastOut)
def update_podcast(episode_id: uuid.UUID, payload: schemas.PodcastIn, db: Session = Depends(get_session)):
    return services.PodcastService(db).update(episode_id, payload)


@router.delete("/podcasts/{episode_id}", status_code=204)
def delete_podcast(episode_id: uuid.UUID, db: Session = Depends(get_session)):
    services.PodcastService(db).delete(episode_id)
    return Response(status_code=204)


# coupons

@router.get("/coupons", response_model=List[schemas.CouponOut])
def list_coupons(db: Session = Depends(get_session)):
    return services.CouponService(db).list()


@router.post("/coupons", response_model=schemas.CouponOut, status_code=201)
def create_coupon(payload: schemas.CouponIn, db: Session = Depends(get_session)):
    """Codes are stored upper-cased and must be unique (409 otherwise)."""
    return services.CouponService(db).create(payload)


@router.get("/coupons/{coupon_id}", response_model=schemas.CouponOut)
def get_coupon(coupon_id: uuid.UUID, db: Session = Depends(get_session)):
    return services.CouponService(db).get(coupon_id)


@router.patch("/coupons/{coupon_id}", response_model=schemas.CouponOut)
def update_coupon(coupon_id: uuid.UUID, payload: schemas.CouponIn, db: Session = Depends(get_session)):
    return services.CouponService(db).update(coupon_id, payload)


@router.delete("/coupons/{coupon_id}", status_code=204)
def delete_coupon(coupon_id: uuid.UUID, db: Session = Depends(get_session)):
    services.CouponService(db).delete(coupon_id)
    return Response(status_code=204)


# ai settings

@router.get("/ai-settings", response_model=schemas.AISettings)
def get_ai_settings(db: Session = Depends(get_session)):
    return services.AISettingsService(db).get()


@router.put("/ai-settings", response_model=schemas.AISettings)
def put_ai_settings(payload: schemas.AISettings, db: Session = Depends(get_session)):
    return services.AISettingsService(db).update(payload)
