import logging
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from . import models, schemas
from .errors import (
    ConflictError,
    EmailInUseError,
    InvalidIdError,
    InvalidReferenceError,
    NotFoundError,
)
from .security import hash_password

logger = logging.getLogger(__name__)

SUBJECT_COLUMNS = {"nome": "name", "ativa": "is_active", "professorId": "professor_id"}
QUESTION_COLUMNS = {
    "enunciado": "statement",
    "dificuldade": "difficulty",
    "respostaCorreta": "correct_answer",
    "disciplinaId": "subject_id",
    "autorId": "author_id",
    "ativa": "is_active",
}

SUBJECT_NOT_FOUND = "Disciplina não encontrada"
AUTHOR_NOT_FOUND = "Autor não encontrado"
PROFESSOR_NOT_FOUND = "Professor não encontrado"


def check_id(value: Any, field: str = "id") -> int:
    """Return ``value`` as a positive int or raise InvalidIdError."""
    try:
        return schemas.parse_positive_id(value)
    except ValueError:
        raise InvalidIdError(field) from None


def _commit(db: Session) -> None:
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise


def _to_columns(changes: Dict[str, Any], mapping: Dict[str, str]) -> Dict[str, Any]:
    return {mapping[key]: value for key, value in changes.items() if key in mapping}


def _newest_first(query, model):
    return query.order_by(model.created_at.desc(), model.id.desc())


# ─── Reference checks ────────────────────────────────────────────────────────


def _require_user(db: Session, user_id: int, field: str, message: str) -> None:
    if db.query(models.User.id).filter(models.User.id == user_id).first() is None:
        raise InvalidReferenceError(field, message)


def _require_subject(db: Session, subject_id: int, field: str = "disciplinaId") -> None:
    if db.query(models.Subject.id).filter(models.Subject.id == subject_id).first() is None:
        raise InvalidReferenceError(field, SUBJECT_NOT_FOUND)


def _check_question_refs(db: Session, columns: Dict[str, Any]) -> None:
    if "subject_id" in columns:
        _require_subject(db, columns["subject_id"])
    if "author_id" in columns:
        _require_user(db, columns["author_id"], "autorId", AUTHOR_NOT_FOUND)


def _check_subject_refs(db: Session, columns: Dict[str, Any]) -> None:
    if "professor_id" in columns:
        _require_user(db, columns["professor_id"], "professorId", PROFESSOR_NOT_FOUND)


def _commit_with_refs(db: Session, recheck: Callable[[], None]) -> None:
    """Commit; an IntegrityError is re-diagnosed instead of leaked.

    A referenced row can vanish between the pre-check and the commit, so the
    checks run again after the rollback to name the offending field.
    """
    try:
        _commit(db)
    except IntegrityError as exc:
        logger.warning("Integrity error on commit: %s", exc.orig)
        recheck()
        raise ConflictError() from exc


# ─── Users ───────────────────────────────────────────────────────────────────


def list_users(db: Session) -> List[models.User]:
    return _newest_first(db.query(models.User), models.User).all()


def get_user(db: Session, user_id: Any) -> models.User:
    user_id = check_id(user_id)
    user = db.query(models.User).filter(models.User.id == user_id).first()
    if user is None:
        raise NotFoundError(f"Usuário com ID {user_id} não encontrado", resource="User")
    return user


def get_user_by_email(db: Session, email: str) -> Optional[models.User]:
    return db.query(models.User).filter(models.User.email == email).first()


def _ensure_email_free(db: Session, email: str, user_id: Optional[int] = None) -> None:
    query = db.query(models.User.id).filter(models.User.email == email)
    if user_id is not None:
        query = query.filter(models.User.id != user_id)
    if query.first() is not None:
        raise EmailInUseError()


def create_user(db: Session, columns: Dict[str, Any], password: str) -> models.User:
    """Insert a user from reconciled column values and a plain password."""
    _ensure_email_free(db, columns["email"])

    user = models.User(password_hash=hash_password(password), **columns)
    db.add(user)
    try:
        _commit(db)
    except IntegrityError as exc:
        # lost a race on the unique email
        raise EmailInUseError() from exc

    db.refresh(user)
    logger.info("Created user %s (%s)", user.id, user.role)
    return user


def update_user(
    db: Session,
    user_id: Any,
    columns: Dict[str, Any],
    password: Optional[str] = None,
) -> models.User:
    user = get_user(db, user_id)
    if "email" in columns and columns["email"] != user.email:
        _ensure_email_free(db, columns["email"], user.id)

    for key, value in columns.items():
        setattr(user, key, value)
    if password is not None:
        user.password_hash = hash_password(password)

    try:
        _commit(db)
    except IntegrityError as exc:
        raise EmailInUseError() from exc

    db.refresh(user)
    return user


def delete_user(db: Session, user_id: Any, snapshot: Callable[[models.User], Dict]) -> Dict:
    user = get_user(db, user_id)
    owns_subjects = (
        db.query(models.Subject.id).filter(models.Subject.professor_id == user.id).first()
    )
    wrote_questions = (
        db.query(models.Question.id).filter(models.Question.author_id == user.id).first()
    )
    if owns_subjects is not None or wrote_questions is not None:
        raise ConflictError("Usuário possui disciplinas ou questões vinculadas")

    data = snapshot(user)
    db.delete(user)
    _commit_with_refs(db, lambda: None)
    logger.info("Deleted user %s", data["id"])
    return data


# ─── Subjects ────────────────────────────────────────────────────────────────


def list_subjects(db: Session, active: Optional[bool] = None) -> List[models.Subject]:
    query = db.query(models.Subject)
    if active is not None:
        query = query.filter(models.Subject.is_active.is_(active))
    return _newest_first(query, models.Subject).all()


def get_subject(db: Session, subject_id: Any) -> models.Subject:
    subject_id = check_id(subject_id)
    subject = db.query(models.Subject).filter(models.Subject.id == subject_id).first()
    if subject is None:
        raise NotFoundError(f"Disciplina com ID {subject_id} não encontrada", resource="Subject")
    return subject


def _ensure_subject_name_free(db: Session, name: str, subject_id: Optional[int] = None) -> None:
    query = db.query(models.Subject.id).filter(models.Subject.name == name)
    if subject_id is not None:
        query = query.filter(models.Subject.id != subject_id)
    if query.first() is not None:
        raise ConflictError("Nome já está em uso por outra disciplina")


def create_subject(db: Session, subject_in: schemas.SubjectCreate) -> models.Subject:
    columns = _to_columns(subject_in.model_dump(), SUBJECT_COLUMNS)
    _check_subject_refs(db, columns)
    _ensure_subject_name_free(db, columns["name"])

    subject = models.Subject(**columns)
    db.add(subject)
    _commit_with_refs(db, lambda: _check_subject_refs(db, columns))
    db.refresh(subject)
    return subject


def update_subject(db: Session, subject_id: Any, changes: Dict[str, Any]) -> models.Subject:
    subject = get_subject(db, subject_id)
    columns = _to_columns(changes, SUBJECT_COLUMNS)
    _check_subject_refs(db, columns)
    if "name" in columns and columns["name"] != subject.name:
        _ensure_subject_name_free(db, columns["name"], subject.id)

    for key, value in columns.items():
        setattr(subject, key, value)
    _commit_with_refs(db, lambda: _check_subject_refs(db, columns))
    db.refresh(subject)
    return subject


def delete_subject(
    db: Session, subject_id: Any, snapshot: Callable[[models.Subject], Dict]
) -> Dict:
    subject = get_subject(db, subject_id)
    if db.query(models.Question.id).filter(models.Question.subject_id == subject.id).first():
        raise ConflictError("Disciplina possui questões vinculadas")

    data = snapshot(subject)
    db.delete(subject)
    _commit_with_refs(db, lambda: None)
    return data


# ─── Questions ───────────────────────────────────────────────────────────────


def list_questions(db: Session, active: Optional[bool] = None) -> List[models.Question]:
    query = db.query(models.Question)
    if active is not None:
        query = query.filter(models.Question.is_active.is_(active))
    return _newest_first(query, models.Question).all()


def get_question(db: Session, question_id: Any) -> models.Question:
    question_id = check_id(question_id)
    question = db.query(models.Question).filter(models.Question.id == question_id).first()
    if question is None:
        raise NotFoundError(f"Questão com ID {question_id} não encontrada", resource="Question")
    return question


def create_question(db: Session, question_in: schemas.QuestionCreate) -> models.Question:
    columns = _to_columns(question_in.model_dump(), QUESTION_COLUMNS)
    _check_question_refs(db, columns)

    question = models.Question(**columns)
    db.add(question)
    _commit_with_refs(db, lambda: _check_question_refs(db, columns))
    db.refresh(question)
    return question


def update_question(db: Session, question_id: Any, changes: Dict[str, Any]) -> models.Question:
    question = get_question(db, question_id)
    columns = _to_columns(changes, QUESTION_COLUMNS)
    _check_question_refs(db, columns)

    for key, value in columns.items():
        setattr(question, key, value)
    _commit_with_refs(db, lambda: _check_question_refs(db, columns))
    db.refresh(question)
    return question


def delete_question(
    db: Session, question_id: Any, snapshot: Callable[[models.Question], Dict]
) -> Dict:
    question = get_question(db, question_id)
    data = snapshot(question)
    db.delete(question)
    _commit(db)
    return data
