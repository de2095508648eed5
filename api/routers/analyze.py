import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from api.dependencies import error_response, get_service
from api.schemas import AnalyzeResponse, ErrorResponse
from api.services import AnalysisService
from core.exceptions import EntityNotFoundError, InvalidQueryError


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Analysis"])

CACHE_CONTROL = "public, s-maxage=300, stale-while-revalidate=600"


@router.get(
    "/analyze",
    response_model=AnalyzeResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def analyze(
    q: Optional[str] = Query(None, description="Chain, protocol or token name"),
    entity_type: Optional[str] = Query(None, alias="type", description="Force chain, protocol, token or exchange"),
    refresh: bool = Query(False, description="Bypass cached provider responses"),
    service: AnalysisService = Depends(get_service),
):
    """
    Aggregate, validate and risk-score one asset.
    """
    try:
        result = await service.analyze(q, entity_type=entity_type, force_refresh=refresh)
    except (InvalidQueryError, EntityNotFoundError) as e:
        return error_response(e.http_status, e.message, e.context or None)
    except Exception as e:
        logger.exception(f"[api] analyze '{q}' failed")
        return error_response(500, "Internal server error", str(e))

    return JSONResponse(content=result.to_dict(), headers={"Cache-Control": CACHE_CONTROL})
