"""Bearer token authentication and role/ownership gates.

All of these are FastAPI dependencies. Routes list them in order, e.g.::

    dependencies=[Depends(authenticate), Depends(require_roles(Role.ADMIN))]

``authenticate`` attaches the caller's :class:`Identity` to
``request.state.identity``; the gates only read it.
"""

import logging
from typing import Optional, Tuple

from fastapi import Depends, Request

from .errors import ForbiddenError, UnauthorizedError
from .models import Role
from .security import Identity, TokenError, TokenFailure, TokenService, get_token_service

logger = logging.getLogger(__name__)

BEARER = "bearer"

_TOKEN_MESSAGES = {
    TokenFailure.EXPIRED: "Token expirado. Por favor, faça login novamente",
    TokenFailure.MALFORMED: "Token inválido. Por favor, faça login novamente",
    TokenFailure.NOT_YET_VALID: "Token ainda não é válido",
}


def split_authorization(header: Optional[str]) -> Tuple[str, str]:
    """Split ``"<scheme> <token>"`` on single spaces.

    Raises UnauthorizedError unless the header has exactly two parts and the
    scheme is ``Bearer`` (any casing). ``"Bearer  x"`` has three parts.
    """
    if not header:
        raise UnauthorizedError("Token de autenticação não fornecido")

    parts = header.split(" ")
    if len(parts) != 2:
        raise UnauthorizedError("Formato de token inválido. Use: Bearer <token>")

    scheme, token = parts
    if scheme.lower() != BEARER:
        raise UnauthorizedError(
            'Formato de token inválido. O token deve começar com "Bearer"'
        )
    if not token:
        raise UnauthorizedError("Formato de token inválido. Use: Bearer <token>")
    return scheme, token


def get_identity(request: Request) -> Optional[Identity]:
    return getattr(request.state, "identity", None)


def authenticate(
    request: Request,
    tokens: TokenService = Depends(get_token_service),
) -> Identity:
    try:
        _, token = split_authorization(request.headers.get("Authorization"))
    except UnauthorizedError as exc:
        logger.info("Rejected %s %s: %s", request.method, request.url.path, exc.message)
        raise

    try:
        identity = tokens.verify(token)
    except TokenError as exc:
        logger.info(
            "Rejected %s %s: token %s (%s)",
            request.method,
            request.url.path,
            exc.reason.value,
            exc.detail,
        )
        raise UnauthorizedError(_TOKEN_MESSAGES[exc.reason]) from exc

    request.state.identity = identity
    logger.debug("Authenticated user %s (%s)", identity.id, identity.role.value)
    return identity


def optional_identity(
    request: Request,
    tokens: TokenService = Depends(get_token_service),
) -> Optional[Identity]:
    """Like ``authenticate`` but any failure leaves the caller anonymous."""
    identity = None
    try:
        _, token = split_authorization(request.headers.get("Authorization"))
        identity = tokens.verify(token)
    except UnauthorizedError:
        pass
    except TokenError as exc:
        logger.debug("Ignoring invalid optional token: %s", exc.reason.value)

    request.state.identity = identity
    return identity


def require_roles(*allowed: Role):
    allowed_roles = frozenset(Role.canonical(role) for role in allowed)

    def dependency(request: Request) -> Identity:
        identity = get_identity(request)
        if identity is None:
            raise UnauthorizedError(
                "Usuário não autenticado. Faça login para continuar."
            )
        if not allowed_roles or identity.role in allowed_roles:
            return identity

        logger.warning(
            "Access denied: user=%s role=%s required=%s %s %s",
            identity.id,
            identity.role.value,
            sorted(r.value for r in allowed_roles),
            request.method,
            request.url.path,
        )
        raise ForbiddenError(
            "Acesso negado. Esta ação requer um dos seguintes papéis: "
            + ", ".join(r.value for r in allowed)
        )

    return dependency


def require_owner_or_role(param_name: str = "id", privileged: Role = Role.ADMIN):
    privileged = Role.canonical(privileged)

    def dependency(request: Request) -> Identity:
        identity = get_identity(request)
        if identity is None:
            raise UnauthorizedError("Usuário não autenticado")
        if identity.role is privileged:
            return identity

        raw = request.path_params.get(param_name)
        try:
            resource_id = int(raw)
        except (TypeError, ValueError):
            resource_id = None
        if resource_id == identity.id:
            return identity

        logger.warning(
            "Access denied: user=%s tried to act on %s=%s %s %s",
            identity.id,
            param_name,
            raw,
            request.method,
            request.url.path,
        )
        raise ForbiddenError()

    return dependency


require_admin = require_roles(Role.ADMIN)
require_staff = require_roles(Role.PROFESSOR, Role.ADMIN)
