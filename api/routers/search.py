import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from api.dependencies import error_response, get_service
from api.schemas import ErrorResponse, SearchResponse
from api.services import AnalysisService
from core.exceptions import InvalidQueryError


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Search"])


@router.get(
    "/search",
    response_model=SearchResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def search(
    q: Optional[str] = Query(None, description="Partial name or symbol"),
    limit: int = Query(15, description="Maximum results (1-50)"),
    service: AnalysisService = Depends(get_service),
):
    """
    Autocomplete over the combined chain, protocol and token index.
    """
    try:
        outcome = await service.search(q, limit)
    except InvalidQueryError as e:
        return error_response(e.http_status, e.message)
    except Exception as e:
        logger.exception(f"[api] search '{q}' failed")
        return error_response(500, "Search failed", str(e))

    return outcome.to_dict()
