import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from .. import crud, reconciliation
from ..auth import authenticate
from ..database import get_db
from ..errors import InvalidCredentialsError
from ..models import Role, User
from ..responses import envelope
from ..schemas import LoginRequest, RegisterRequest
from ..security import Identity, TokenService, get_token_service, verify_password
from ..validation import validate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v2/auth", tags=["auth"])


def _session_payload(user: User, tokens: TokenService) -> dict:
    identity = Identity(id=user.id, email=user.email, role=Role.canonical(user.role))
    return {"user": reconciliation.present_profile(user), "token": tokens.issue(identity)}


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(
    body: RegisterRequest = Depends(validate(RegisterRequest)),
    tokens: TokenService = Depends(get_token_service),
    db: Session = Depends(get_db),
):
    user = crud.create_user(db, reconciliation.columns_from_registration(body), body.senha)
    return envelope(_session_payload(user, tokens), message="Usuário registrado com sucesso")


@router.post("/login")
def login(
    body: LoginRequest = Depends(validate(LoginRequest)),
    tokens: TokenService = Depends(get_token_service),
    db: Session = Depends(get_db),
):
    user = crud.get_user_by_email(db, body.email)
    # same answer for unknown email and wrong password
    if user is None or not verify_password(body.senha, user.password_hash):
        logger.info("Failed login for %s", body.email)
        raise InvalidCredentialsError()

    return envelope(_session_payload(user, tokens), message="Login realizado com sucesso")


@router.get("/me")
def me(identity: Identity = Depends(authenticate), db: Session = Depends(get_db)):
    return envelope(reconciliation.present_profile(crud.get_user(db, identity.id)))
