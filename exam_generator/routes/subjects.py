"""Subject (``disciplina``) CRUD, mounted once per API version.

v1 is open. v2 requires a PROFESSOR or ADMIN token for writes and shows
anonymous callers only active subjects.
"""

from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from .. import crud
from ..auth import authenticate, optional_identity, require_staff
from ..database import get_db
from ..responses import envelope, listing
from ..schemas import IdParams, ListQuery, SubjectCreate, SubjectOut, SubjectUpdate
from ..security import Identity
from ..validation import validate


def present_subject(subject) -> dict:
    return SubjectOut.model_validate(subject).model_dump(mode="json")


def visible_subjects(db: Session, viewer: Optional[Identity], active: Optional[bool]):
    if viewer is None:
        if active is False:
            return []
        active = True
    return crud.list_subjects(db, active=active)


def build_router(version: str, protected: bool) -> APIRouter:
    router = APIRouter(prefix=f"/{version}/subjects", tags=[f"subjects {version}"])
    writers = [Depends(authenticate), Depends(require_staff)] if protected else []
    tag = version if protected else None

    if protected:

        @router.get("")
        def list_subjects(
            viewer: Optional[Identity] = Depends(optional_identity),
            query: ListQuery = Depends(validate(ListQuery, "query")),
            db: Session = Depends(get_db),
        ):
            subjects = visible_subjects(db, viewer, query.ativa)
            return listing(subjects, present_subject, version=tag)

    else:

        @router.get("")
        def list_subjects(db: Session = Depends(get_db)):
            return listing(crud.list_subjects(db), present_subject)

    @router.get("/{id}")
    def get_subject(
        params: IdParams = Depends(validate(IdParams, "params")),
        db: Session = Depends(get_db),
    ):
        return envelope(present_subject(crud.get_subject(db, params.id)), version=tag)

    @router.post("", status_code=status.HTTP_201_CREATED, dependencies=writers)
    def create_subject(
        body: SubjectCreate = Depends(validate(SubjectCreate)),
        db: Session = Depends(get_db),
    ):
        subject = crud.create_subject(db, body)
        return envelope(
            present_subject(subject), message="Disciplina criada com sucesso", version=tag
        )

    @router.put("/{id}", dependencies=writers)
    def update_subject(
        params: IdParams = Depends(validate(IdParams, "params")),
        body: SubjectUpdate = Depends(validate(SubjectUpdate)),
        db: Session = Depends(get_db),
    ):
        subject = crud.update_subject(db, params.id, body.model_dump(exclude_unset=True))
        return envelope(
            present_subject(subject), message="Disciplina atualizada com sucesso", version=tag
        )

    @router.delete("/{id}", dependencies=writers)
    def delete_subject(
        params: IdParams = Depends(validate(IdParams, "params")),
        db: Session = Depends(get_db),
    ):
        data = crud.delete_subject(db, params.id, present_subject)
        return envelope(data, message="Disciplina removida com sucesso", version=tag)

    return router


v1_router = build_router("v1", protected=False)
v2_router = build_router("v2", protected=True)
