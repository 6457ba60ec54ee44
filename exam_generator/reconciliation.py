"""Keeps the v1 and v2 representations of a user consistent.

v1 speaks ``nome`` / ``papel`` (uppercase); v2 speaks ``primeiro_nome`` +
``sobrenome`` / ``tipo_usuario`` (lowercase) / ``telefone``. Both are stored
side by side on :class:`~exam_generator.models.User`. The functions here turn
validated input into column values and ORM rows into version-specific
payloads. Password hashing is left to the caller.

Rules:

* ``full_name`` is derived from the name parts whenever both are known.
* names are never synthesized by splitting ``full_name``; a record created
  through v1 keeps null name parts until they are edited explicitly.
* ``role`` and ``user_type`` always move together.
"""

from typing import Any, Dict, Optional

from .models import Role, User
from .schemas import (
    ProfileOut,
    RegisterRequest,
    UserCreateV1,
    UserCreateV2,
    UserV1Out,
    UserV2Out,
)

Columns = Dict[str, Any]


def compose_full_name(first: Optional[str], last: Optional[str]) -> str:
    return f"{first or ''} {last or ''}".strip()


def role_columns(role) -> Columns:
    role = Role.canonical(role)
    return {"role": role.value, "user_type": role.user_type}


# ─── Create ──────────────────────────────────────────────────────────────────


def columns_from_v1(data: UserCreateV1) -> Columns:
    return {
        "full_name": data.nome,
        "first_name": None,
        "last_name": None,
        "email": data.email,
        "phone": None,
        "photo": data.foto,
        **role_columns(data.papel),
    }


def columns_from_v2(data: UserCreateV2) -> Columns:
    return {
        "full_name": compose_full_name(data.primeiro_nome, data.sobrenome),
        "first_name": data.primeiro_nome,
        "last_name": data.sobrenome,
        "email": data.email,
        "phone": data.telefone,
        "photo": data.foto,
        **role_columns(data.tipo_usuario),
    }


def columns_from_registration(data: RegisterRequest) -> Columns:
    if data.primeiro_nome and data.sobrenome:
        full_name = compose_full_name(data.primeiro_nome, data.sobrenome)
    else:
        full_name = data.nome
    return {
        "full_name": full_name,
        "first_name": data.primeiro_nome,
        "last_name": data.sobrenome,
        "email": data.email,
        "phone": data.telefone,
        "photo": data.foto,
        **role_columns(data.papel),
    }


# ─── Update ──────────────────────────────────────────────────────────────────


def changes_from_v1(user: User, changes: Dict[str, Any]) -> Columns:
    """Column updates for a v1 partial update (``senha`` is ignored here)."""
    columns: Columns = {}

    if "nome" in changes:
        columns["full_name"] = changes["nome"]
        has_parts = user.first_name is not None or user.last_name is not None
        if has_parts and compose_full_name(user.first_name, user.last_name) != changes["nome"]:
            columns["first_name"] = None
            columns["last_name"] = None

    if "email" in changes:
        columns["email"] = changes["email"]
    if "papel" in changes:
        columns.update(role_columns(changes["papel"]))
    if "foto" in changes:
        columns["photo"] = changes["foto"]
    return columns


def changes_from_v2(user: User, changes: Dict[str, Any]) -> Columns:
    """Column updates for a v2 partial update (``senha`` is ignored here)."""
    columns: Columns = {}

    if "primeiro_nome" in changes or "sobrenome" in changes:
        first = changes.get("primeiro_nome", user.first_name)
        last = changes.get("sobrenome", user.last_name)
        if "primeiro_nome" in changes:
            columns["first_name"] = first
        if "sobrenome" in changes:
            columns["last_name"] = last
        # legacy record with one part unknown: leave full_name alone
        if first and last:
            columns["full_name"] = compose_full_name(first, last)

    if "email" in changes:
        columns["email"] = changes["email"]
    if "tipo_usuario" in changes:
        columns.update(role_columns(changes["tipo_usuario"]))
    if "telefone" in changes:
        columns["phone"] = changes["telefone"]
    if "foto" in changes:
        columns["photo"] = changes["foto"]
    return columns


# ─── Read ────────────────────────────────────────────────────────────────────


def present_v1(user: User) -> Dict[str, Any]:
    return UserV1Out.model_validate(user).model_dump(mode="json")


def present_v2(user: User) -> Dict[str, Any]:
    return UserV2Out.model_validate(user).model_dump(mode="json")


def present_profile(user: User) -> Dict[str, Any]:
    """Both field sets, for the authenticated ``/v2/auth`` views."""
    return ProfileOut.model_validate(user).model_dump(mode="json")
