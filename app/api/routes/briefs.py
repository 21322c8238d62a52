"""API endpoints for creating and browsing strategic briefs."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Response, status
from fastapi.responses import JSONResponse, PlainTextResponse

from app.models.brief import BriefRequest
from app.services.briefs.errors import BriefPersistenceError, BriefValidationError
from app.services.briefs.pipeline import BriefPipeline, get_brief_pipeline

router = APIRouter()
logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
    "Access-Control-Allow-Methods": "GET, POST, DELETE, OPTIONS",
}

PERSISTENCE_FAILED = "Failed to save brief to database"
INTERNAL_ERROR = "Internal server error"


@router.options("/briefs")
def briefs_preflight() -> PlainTextResponse:
    """Answer CORS preflight requests."""
    return PlainTextResponse("ok", headers=CORS_HEADERS)


@router.post("/briefs")
def create_brief(
    payload: BriefRequest,
    pipeline: BriefPipeline = Depends(get_brief_pipeline),
) -> JSONResponse:
    """Synthesize and persist a brief for one company."""
    try:
        brief = pipeline.create_brief(payload)
    except BriefValidationError as exc:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": str(exc)},
            headers=CORS_HEADERS,
        )
    except BriefPersistenceError as exc:
        logger.error("briefs.api_error", extra={"code": exc.code, "company_name": payload.company_name})
        return _internal_error(PERSISTENCE_FAILED, str(exc))
    except Exception as exc:
        logger.exception("briefs.api_unexpected_error", extra={"company_name": payload.company_name})
        return _internal_error(INTERNAL_ERROR, str(exc))
    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content={"success": True, "brief": brief.to_payload()},
        headers=CORS_HEADERS,
    )


@router.get("/briefs")
def list_briefs(pipeline: BriefPipeline = Depends(get_brief_pipeline)) -> JSONResponse:
    """Return stored briefs, newest first."""
    briefs = pipeline.list_briefs()
    return JSONResponse(
        content={"briefs": [brief.to_payload() for brief in briefs]},
        headers=CORS_HEADERS,
    )


@router.get("/briefs/{brief_id}")
def get_brief(brief_id: str, pipeline: BriefPipeline = Depends(get_brief_pipeline)) -> JSONResponse:
    brief = pipeline.get_brief(brief_id)
    if brief is None:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"error": "Brief not found"},
            headers=CORS_HEADERS,
        )
    return JSONResponse(content={"brief": brief.to_payload()}, headers=CORS_HEADERS)


@router.delete("/briefs/{brief_id}")
def delete_brief(brief_id: str, pipeline: BriefPipeline = Depends(get_brief_pipeline)) -> Response:
    if not pipeline.delete_brief(brief_id):
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"error": "Brief not found"},
            headers=CORS_HEADERS,
        )
    return Response(status_code=status.HTTP_204_NO_CONTENT, headers=CORS_HEADERS)


def _internal_error(error: str, details: str) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": error, "details": details},
        headers=CORS_HEADERS,
    )
