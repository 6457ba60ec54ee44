from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from .. import crud
from ..auth import authenticate, optional_identity, require_staff
from ..database import get_db
from ..responses import envelope, listing
from ..schemas import IdParams, ListQuery, QuestionCreate, QuestionOut, QuestionUpdate
from ..security import Identity
from ..validation import validate


def present_question(question) -> dict:
    return QuestionOut.model_validate(question).model_dump(mode="json")


def visible_questions(db: Session, viewer: Optional[Identity], active: Optional[bool]):
    if viewer is None:
        if active is False:
            return []
        active = True
    return crud.list_questions(db, active=active)


def build_router(version: str, protected: bool) -> APIRouter:
    router = APIRouter(prefix=f"/{version}/questions", tags=[f"questions {version}"])
    writers = [Depends(authenticate), Depends(require_staff)] if protected else []
    tag = version if protected else None

    if protected:

        @router.get("")
        def list_questions(
            viewer: Optional[Identity] = Depends(optional_identity),
            query: ListQuery = Depends(validate(ListQuery, "query")),
            db: Session = Depends(get_db),
        ):
            questions = visible_questions(db, viewer, query.ativa)
            return listing(questions, present_question, version=tag)

    else:

        @router.get("")
        def list_questions(db: Session = Depends(get_db)):
            return listing(crud.list_questions(db), present_question)

    @router.get("/{id}")
    def get_question(
        params: IdParams = Depends(validate(IdParams, "params")),
        db: Session = Depends(get_db),
    ):
        return envelope(present_question(crud.get_question(db, params.id)), version=tag)

    @router.post("", status_code=status.HTTP_201_CREATED, dependencies=writers)
    def create_question(
        body: QuestionCreate = Depends(validate(QuestionCreate)),
        db: Session = Depends(get_db),
    ):
        question = crud.create_question(db, body)
        return envelope(
            present_question(question), message="Questão criada com sucesso", version=tag
        )

    @router.put("/{id}", dependencies=writers)
    def update_question(
        params: IdParams = Depends(validate(IdParams, "params")),
        body: QuestionUpdate = Depends(validate(QuestionUpdate)),
        db: Session = Depends(get_db),
    ):
        question = crud.update_question(db, params.id, body.model_dump(exclude_unset=True))
        return envelope(
            present_question(question), message="Questão atualizada com sucesso", version=tag
        )

    @router.delete("/{id}", dependencies=writers)
    def delete_question(
        params: IdParams = Depends(validate(IdParams, "params")),
        db: Session = Depends(get_db),
    ):
        data = crud.delete_question(db, params.id, present_question)
        return envelope(data, message="Questão removida com sucesso", version=tag)

    return router


v1_router = build_router("v1", protected=False)
v2_router = build_router("v2", protected=True)
