"""Application error taxonomy.

Every failure raised by services, dependencies and routes is one of these.
The exception handlers in ``main`` turn them into the uniform JSON envelope,
so nothing else in the code base builds error bodies by hand.
"""

from typing import Any, Dict, List, Optional

ErrorDetail = Dict[str, Any]


class AppError(Exception):
    """Base class for errors that map to a specific HTTP status and code."""

    status_code = 500
    code = "INTERNAL"
    default_message = "Erro interno do servidor"

    def __init__(
        self,
        message: Optional[str] = None,
        details: Optional[List[ErrorDetail]] = None,
    ):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(AppError):
    """Malformed, missing or out-of-range input."""

    status_code = 400
    code = "VALIDATION_ERROR"
    default_message = "Dados de entrada inválidos"


class InvalidIdError(ValidationError):
    """A numeric id parameter is not a positive integer."""

    default_message = "ID inválido. Deve ser um número positivo"

    def __init__(self, field: str = "id", message: Optional[str] = None):
        message = message or self.default_message
        super().__init__(
            message, [{"field": field, "message": message, "code": "invalid_id"}]
        )


class InvalidReferenceError(ValidationError):
    """A foreign key in the payload points at a row that does not exist.

    This is a client input problem, not a missing target resource, so it
    maps to 400 rather than 404.
    """

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(
            message, [{"field": field, "message": message, "code": "not_found"}]
        )


class UnauthorizedError(AppError):
    status_code = 401
    code = "UNAUTHORIZED"
    default_message = "Não autenticado"


class InvalidCredentialsError(UnauthorizedError):
    code = "INVALID_CREDENTIALS"
    default_message = "Credenciais inválidas"


class ForbiddenError(AppError):
    status_code = 403
    code = "FORBIDDEN"
    default_message = "Você não tem permissão para acessar este recurso"


class NotFoundError(AppError):
    status_code = 404
    code = "NOT_FOUND"
    default_message = "Recurso não encontrado"

    def __init__(self, message: Optional[str] = None, resource: Optional[str] = None):
        self.resource = resource
        super().__init__(message)


class ConflictError(AppError):
    status_code = 409
    code = "CONFLICT"
    default_message = "Conflito com o estado atual do recurso"


class EmailInUseError(ConflictError):
    code = "EMAIL_IN_USE"
    default_message = "Email já está em uso"


class InternalError(AppError):
    pass
