from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from .. import crud, reconciliation
from ..auth import authenticate, get_identity, require_admin, require_owner_or_role
from ..database import get_db
from ..errors import ForbiddenError, ValidationError
from ..models import Role
from ..responses import envelope, listing
from ..schemas import IdParams, UserCreateV2, UserUpdateV2
from ..security import Identity
from ..uploads import PhotoFile, UploadcareUploader, get_photo_uploader, photo_file
from ..validation import validate

VERSION = "v2"
EMPTY_UPDATE = "Pelo menos um campo deve ser fornecido para atualização"
ROLE_CHANGE_FORBIDDEN = "Apenas administradores podem alterar o tipo de usuário"

router = APIRouter(prefix="/v2/users", tags=["users v2"])


async def _store_photo(uploader: UploadcareUploader, photo: PhotoFile) -> str:
    return await uploader.upload(photo.content, photo.filename, photo.content_type)


@router.get("")
def list_users(db: Session = Depends(get_db)):
    return listing(crud.list_users(db), reconciliation.present_v2, version=VERSION)


@router.get("/{id}")
def get_user(
    params: IdParams = Depends(validate(IdParams, "params")),
    db: Session = Depends(get_db),
):
    user = crud.get_user(db, params.id)
    return envelope(reconciliation.present_v2(user), version=VERSION)


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(authenticate), Depends(require_admin)],
)
async def create_user(
    body: UserCreateV2 = Depends(validate(UserCreateV2)),
    photo: Optional[PhotoFile] = Depends(photo_file),
    uploader: UploadcareUploader = Depends(get_photo_uploader),
    db: Session = Depends(get_db),
):
    columns = reconciliation.columns_from_v2(body)
    if photo is not None:
        columns["photo"] = await _store_photo(uploader, photo)

    user = crud.create_user(db, columns, body.senha)
    return envelope(
        reconciliation.present_v2(user),
        message="Usuário criado com sucesso",
        version=VERSION,
    )


@router.put(
    "/{id}",
    dependencies=[Depends(authenticate), Depends(require_owner_or_role("id"))],
)
async def update_user(
    params: IdParams = Depends(validate(IdParams, "params")),
    body: UserUpdateV2 = Depends(validate(UserUpdateV2)),
    photo: Optional[PhotoFile] = Depends(photo_file),
    uploader: UploadcareUploader = Depends(get_photo_uploader),
    caller: Identity = Depends(get_identity),
    db: Session = Depends(get_db),
):
    changes = body.model_dump(exclude_unset=True)
    if not changes and photo is None:
        raise ValidationError(EMPTY_UPDATE)
    if "tipo_usuario" in changes and caller.role is not Role.ADMIN:
        raise ForbiddenError(ROLE_CHANGE_FORBIDDEN)

    user = crud.get_user(db, params.id)
    if photo is not None:
        changes["foto"] = await _store_photo(uploader, photo)

    user = crud.update_user(
        db,
        user.id,
        reconciliation.changes_from_v2(user, changes),
        password=changes.get("senha"),
    )
    return envelope(
        reconciliation.present_v2(user),
        message="Usuário atualizado com sucesso",
        version=VERSION,
    )


@router.delete(
    "/{id}",
    dependencies=[Depends(authenticate), Depends(require_admin)],
)
def delete_user(
    params: IdParams = Depends(validate(IdParams, "params")),
    db: Session = Depends(get_db),
):
    data = crud.delete_user(db, params.id, reconciliation.present_v2)
    return envelope(data, message="Usuário removido com sucesso", version=VERSION)
