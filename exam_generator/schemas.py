import re
from datetime import datetime
from typing import Annotated, Optional
from urllib.parse import urlparse

from pydantic import (
    AfterValidator,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    EmailStr,
    Field,
    conint,
    constr,
    field_validator,
)

from .models import Role

INVALID_ID_MESSAGE = "ID inválido. Deve ser um número positivo"

PHONE_V2_RE = re.compile(r"^\d{10,11}$")
PHONE_REGISTER_RE = re.compile(r"^\+?[\d\s()-]{10,20}$")
PASSWORD_STRENGTH_RE = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)")
MAX_EMAIL_LENGTH = 255
# largest value an INTEGER primary key can hold
MAX_ID = 2**31 - 1


def _normalize_email(value):
    if isinstance(value, str):
        return value.strip().lower()
    return value


def _check_url(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    parsed = urlparse(value)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError("URL da foto inválida")
    return value


def _check_phone(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    if not PHONE_V2_RE.match(value):
        raise ValueError("Telefone deve ter 10 ou 11 dígitos")
    return value


def _papel(value):
    """v1 roles are accepted in uppercase only."""
    if isinstance(value, Role):
        return value
    if not isinstance(value, str) or value not in {role.value for role in Role}:
        raise ValueError("Papel deve ser 'PROFESSOR' ou 'ADMIN'")
    return Role(value)


def _tipo_usuario(value):
    """v2 roles are accepted in lowercase only."""
    if isinstance(value, Role):
        return value
    if not isinstance(value, str) or value not in {role.user_type for role in Role}:
        raise ValueError("Tipo de usuário deve ser professor ou admin")
    return Role.canonical(value)


def parse_positive_id(value) -> int:
    text = str(value).strip()
    if not text.isdigit() or not 0 < int(text) <= MAX_ID:
        raise ValueError(INVALID_ID_MESSAGE)
    return int(text)


FullName = constr(strip_whitespace=True, min_length=3, max_length=100)
NamePart = constr(strip_whitespace=True, min_length=2, max_length=50)
Password = constr(min_length=6, max_length=100)
Difficulty = conint(ge=1, le=5)
ReferenceId = conint(gt=0, le=MAX_ID)

Email = Annotated[EmailStr, BeforeValidator(_normalize_email)]
PhotoUrl = Annotated[Optional[str], AfterValidator(_check_url)]
Phone = Annotated[Optional[str], AfterValidator(_check_phone)]
Papel = Annotated[Role, BeforeValidator(_papel)]
TipoUsuario = Annotated[Role, BeforeValidator(_tipo_usuario)]


# ─── Route params / query ────────────────────────────────────────────────────


class IdParams(BaseModel):
    id: int

    @field_validator("id", mode="before")
    @classmethod
    def id_must_be_positive(cls, value):
        return parse_positive_id(value)


class ListQuery(BaseModel):
    ativa: Optional[bool] = None


# ─── Users: v1 ───────────────────────────────────────────────────────────────


class UserCreateV1(BaseModel):
    nome: FullName
    email: Email
    senha: Password
    papel: Papel = Role.PROFESSOR
    foto: PhotoUrl = None


class UserUpdateV1(BaseModel):
    nome: FullName = None
    email: Email = None
    senha: Password = None
    papel: Papel = None
    foto: PhotoUrl = None


# ─── Users: v2 ───────────────────────────────────────────────────────────────


class UserCreateV2(BaseModel):
    primeiro_nome: NamePart
    sobrenome: NamePart
    email: Email
    senha: Password
    tipo_usuario: TipoUsuario = Role.PROFESSOR
    telefone: Phone = None
    foto: PhotoUrl = None


class UserUpdateV2(BaseModel):
    """Partial update. Unknown fields (``nome``, ``papel``...) are rejected."""

    model_config = ConfigDict(extra="forbid")

    primeiro_nome: NamePart = None
    sobrenome: NamePart = None
    email: Email = None
    senha: Password = None
    tipo_usuario: TipoUsuario = None
    telefone: Phone = None
    foto: PhotoUrl = None


# ─── Auth ────────────────────────────────────────────────────────────────────


class RegisterRequest(BaseModel):
    """Accepts either ``nome`` or ``primeiro_nome`` + ``sobrenome``."""

    primeiro_nome: Optional[NamePart] = None
    sobrenome: Optional[NamePart] = None
    # declared after the name parts so its validator can see them
    nome: Optional[constr(strip_whitespace=True, min_length=2, max_length=100)] = Field(
        default=None, validate_default=True
    )
    email: Email
    senha: Password
    papel: Papel = Role.PROFESSOR
    telefone: Optional[str] = None
    foto: PhotoUrl = None

    @field_validator("nome")
    @classmethod
    def some_name_is_required(cls, value, info):
        parts = info.data
        if not value and not (parts.get("primeiro_nome") and parts.get("sobrenome")):
            raise ValueError("Informe o nome completo OU primeiro_nome e sobrenome")
        return value

    @field_validator("email")
    @classmethod
    def email_fits_column(cls, value: str) -> str:
        if len(value) > MAX_EMAIL_LENGTH:
            raise ValueError("Email deve ter no máximo 255 caracteres")
        return value

    @field_validator("senha")
    @classmethod
    def password_must_be_strong(cls, value: str) -> str:
        if not PASSWORD_STRENGTH_RE.match(value):
            raise ValueError(
                "Senha deve conter pelo menos uma letra minúscula, uma maiúscula e um número"
            )
        return value

    @field_validator("telefone")
    @classmethod
    def phone_to_digits(cls, value: Optional[str]) -> Optional[str]:
        if not value:
            return None
        if not PHONE_REGISTER_RE.match(value):
            raise ValueError("Telefone inválido")
        digits = re.sub(r"\D", "", value)
        if not PHONE_V2_RE.match(digits):
            raise ValueError("Telefone deve ter 10 ou 11 dígitos")
        return digits


class LoginRequest(BaseModel):
    email: Email
    senha: constr(min_length=1)


# ─── Subjects ────────────────────────────────────────────────────────────────


class SubjectCreate(BaseModel):
    nome: constr(strip_whitespace=True, min_length=1, max_length=100)
    ativa: bool = True
    professorId: ReferenceId


class SubjectUpdate(BaseModel):
    nome: constr(strip_whitespace=True, min_length=1, max_length=100) = None
    ativa: bool = None
    professorId: ReferenceId = None


# ─── Questions ───────────────────────────────────────────────────────────────


class QuestionCreate(BaseModel):
    enunciado: constr(strip_whitespace=True, min_length=1)
    dificuldade: Difficulty
    respostaCorreta: Optional[str] = None
    disciplinaId: ReferenceId
    autorId: ReferenceId
    ativa: bool = True


class QuestionUpdate(BaseModel):
    enunciado: constr(strip_whitespace=True, min_length=1) = None
    dificuldade: Difficulty = None
    respostaCorreta: Optional[str] = None
    disciplinaId: ReferenceId = None
    autorId: ReferenceId = None
    ativa: bool = None


# ─── Output ──────────────────────────────────────────────────────────────────


class OrmOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    createdAt: datetime = Field(validation_alias="created_at")
    updatedAt: datetime = Field(validation_alias="updated_at")


class UserV1Out(OrmOut):
    id: int
    nome: Optional[str] = Field(validation_alias="full_name")
    email: str
    papel: str = Field(validation_alias="role")
    foto: Optional[str] = Field(validation_alias="photo")


class UserV2Out(OrmOut):
    id: int
    primeiro_nome: Optional[str] = Field(validation_alias="first_name")
    sobrenome: Optional[str] = Field(validation_alias="last_name")
    email: str
    tipo_usuario: str = Field(validation_alias="user_type")
    telefone: Optional[str] = Field(validation_alias="phone")
    foto: Optional[str] = Field(validation_alias="photo")


class ProfileOut(UserV2Out):
    nome: Optional[str] = Field(validation_alias="full_name")
    papel: str = Field(validation_alias="role")


class SubjectOut(OrmOut):
    id: int
    nome: str = Field(validation_alias="name")
    ativa: bool = Field(validation_alias="is_active")
    professorId: int = Field(validation_alias="professor_id")


class QuestionOut(OrmOut):
    id: int
    enunciado: str = Field(validation_alias="statement")
    dificuldade: int = Field(validation_alias="difficulty")
    respostaCorreta: Optional[str] = Field(validation_alias="correct_answer")
    disciplinaId: int = Field(validation_alias="subject_id")
    autorId: int = Field(validation_alias="author_id")
    ativa: bool = Field(validation_alias="is_active")
