from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from .. import crud, reconciliation
from ..database import get_db
from ..errors import ValidationError
from ..responses import envelope, listing
from ..schemas import IdParams, UserCreateV1, UserUpdateV1
from ..validation import validate

router = APIRouter(prefix="/v1/users", tags=["users v1"])

EMPTY_UPDATE = "Pelo menos um campo deve ser fornecido para atualização"


@router.get("")
def list_users(db: Session = Depends(get_db)):
    return listing(crud.list_users(db), reconciliation.present_v1)


@router.get("/{id}")
def get_user(
    params: IdParams = Depends(validate(IdParams, "params")),
    db: Session = Depends(get_db),
):
    return envelope(reconciliation.present_v1(crud.get_user(db, params.id)))


@router.post("", status_code=status.HTTP_201_CREATED)
def create_user(
    body: UserCreateV1 = Depends(validate(UserCreateV1)),
    db: Session = Depends(get_db),
):
    user = crud.create_user(db, reconciliation.columns_from_v1(body), body.senha)
    return envelope(reconciliation.present_v1(user), message="Usuário criado com sucesso")


@router.put("/{id}")
def update_user(
    params: IdParams = Depends(validate(IdParams, "params")),
    body: UserUpdateV1 = Depends(validate(UserUpdateV1)),
    db: Session = Depends(get_db),
):
    changes = body.model_dump(exclude_unset=True)
    if not changes:
        raise ValidationError(EMPTY_UPDATE)

    user = crud.get_user(db, params.id)
    user = crud.update_user(
        db,
        user.id,
        reconciliation.changes_from_v1(user, changes),
        password=changes.get("senha"),
    )
    return envelope(reconciliation.present_v1(user), message="Usuário atualizado com sucesso")


@router.delete("/{id}")
def delete_user(
    params: IdParams = Depends(validate(IdParams, "params")),
    db: Session = Depends(get_db),
):
    data = crud.delete_user(db, params.id, reconciliation.present_v1)
    return envelope(data, message="Usuário removido com sucesso")
