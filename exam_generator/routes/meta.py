"""Service health and per-version info endpoints."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import Settings, get_settings
from ..database import get_db

logger = logging.getLogger(__name__)

router = APIRouter(tags=["meta"])

AVAILABLE_VERSIONS = ["v1", "v2"]
V2_CHANGES = [
    "Campos primeiro_nome e sobrenome separados",
    "Campo tipo_usuario em lowercase",
    "Campo telefone adicionado",
    "Autenticação JWT implementada",
]


def check_database(db: Session) -> dict:
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.exception("Database health check failed")
        return {"status": "ERROR", "message": "Falha na conexão com banco de dados"}
    return {"status": "OK", "message": "Conexão com banco de dados funcionando"}


@router.get("/health")
def health(db: Session = Depends(get_db), settings: Settings = Depends(get_settings)):
    """Deep health check. 200 when the database answers, 503 otherwise."""
    database = check_database(db)
    healthy = database["status"] == "OK"

    content = {
        "status": "OK" if healthy else "DEGRADED",
        "message": settings.app_name,
        "timestamp": datetime.now(tz=timezone.utc).isoformat(),
        "version": settings.app_version,
        "availableVersions": AVAILABLE_VERSIONS,
        "versions": {
            "v1": {
                "status": "active",
                "endpoint": "/v1",
                "deprecated": settings.v1_deprecated,
            },
            "v2": {
                "status": "active",
                "endpoint": "/v2",
                "deprecated": False,
                "changes": V2_CHANGES[:3],
            },
        },
        "services": {"api": "OK", "database": database},
    }
    return JSONResponse(content=content, status_code=200 if healthy else 503)


@router.get("/v1")
def v1_info(settings: Settings = Depends(get_settings)):
    return {
        "success": True,
        "message": "API Gerador de Provas - Versão 1",
        "version": "1.0.0",
        "deprecated": settings.v1_deprecated,
        "endpoints": {
            "users": "/v1/users",
            "subjects": "/v1/subjects",
            "questions": "/v1/questions",
        },
    }


@router.get("/v1/health")
def v1_health():
    return {"version": "v1", "status": "OK", "message": "API v1 do Gerador de Provas"}


@router.get("/v2")
def v2_info(settings: Settings = Depends(get_settings)):
    return {
        "success": True,
        "message": "API Gerador de Provas - Versão 2",
        "version": settings.app_version,
        "endpoints": {
            "users": "/v2/users",
            "auth": "/v2/auth",
            "subjects": "/v2/subjects",
            "questions": "/v2/questions",
        },
        "changes": V2_CHANGES,
    }
