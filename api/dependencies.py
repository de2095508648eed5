"""
Shared router helpers.
"""
from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse

from api.services import AnalysisService


def get_service(request: Request) -> AnalysisService:
    return request.app.state.service


def error_response(status_code: int, error: str, details: Any = None) -> JSONResponse:
    body = {"error": error}
    if details is not None:
        body["details"] = details
    return JSONResponse(status_code=status_code, content=body)
