"""Request validation against declarative pydantic schemas.

``validate(Schema, "body")`` returns a FastAPI dependency. It reads the raw
input for the given source, runs the schema and either hands the normalized
model to the route or raises :class:`~exam_generator.errors.ValidationError`
with one detail per violated rule.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Type

from fastapi import Request
from pydantic import BaseModel
from pydantic import ValidationError as SchemaError
from starlette.datastructures import UploadFile

from .errors import ErrorDetail, ValidationError

logger = logging.getLogger(__name__)

SOURCES = ("body", "query", "params")
FORM_TYPES = ("multipart/form-data", "application/x-www-form-urlencoded")


@dataclass(frozen=True)
class ValidationOutcome:
    valid: bool
    value: Optional[BaseModel] = None
    errors: List[ErrorDetail] = field(default_factory=list)


def _message(error: Dict[str, Any]) -> str:
    # ValueErrors raised in validators come back as "Value error, <msg>"
    if error["type"] == "value_error":
        cause = error.get("ctx", {}).get("error")
        if cause is not None:
            return str(cause)
    return error["msg"]


def format_errors(exc: SchemaError) -> List[ErrorDetail]:
    return [
        {
            "field": ".".join(str(part) for part in error["loc"]),
            "message": _message(error),
            "code": error["type"],
        }
        for error in exc.errors()
    ]


def run_schema(schema: Type[BaseModel], data: Any) -> ValidationOutcome:
    try:
        return ValidationOutcome(valid=True, value=schema.model_validate(data))
    except SchemaError as exc:
        return ValidationOutcome(valid=False, errors=format_errors(exc))


def _invalid_body(message: str) -> ValidationError:
    return ValidationError(
        details=[{"field": "body", "message": message, "code": "invalid_body"}]
    )


async def read_body(request: Request) -> Dict[str, Any]:
    """JSON object or the text parts of a form. File parts are skipped."""
    content_type = request.headers.get("content-type", "")
    if content_type.startswith(FORM_TYPES):
        form = await request.form()
        return {
            key: value
            for key, value in form.multi_items()
            if not isinstance(value, UploadFile)
        }

    raw = await request.body()
    if not raw.strip():
        return {}
    try:
        data = json.loads(raw)
    except ValueError:
        raise _invalid_body("JSON inválido no corpo da requisição") from None
    if not isinstance(data, dict):
        raise _invalid_body("O corpo da requisição deve ser um objeto JSON")
    return data


async def read_source(request: Request, source: str) -> Dict[str, Any]:
    if source == "body":
        return await read_body(request)
    if source == "query":
        return dict(request.query_params)
    return dict(request.path_params)


def validate(schema: Type[BaseModel], source: str = "body"):
    if source not in SOURCES:
        raise ValueError(f"Unknown validation source: {source!r}")

    async def dependency(request: Request) -> BaseModel:
        data = await read_source(request, source)
        outcome = run_schema(schema, data)
        if not outcome.valid:
            logger.info(
                "Validation failed for %s %s (%s): %s",
                request.method,
                request.url.path,
                source,
                [detail["field"] for detail in outcome.errors],
            )
            raise ValidationError(details=outcome.errors)

        if not hasattr(request.state, "validated"):
            request.state.validated = {}
        request.state.validated[source] = outcome.value
        return outcome.value

    dependency.__name__ = f"validate_{schema.__name__}_{source}"
    return dependency
