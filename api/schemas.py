"""
Pydantic schemas for API responses.
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel


# =======================
# COMMON
# =======================

class ErrorResponse(BaseModel):
    error: str
    details: Optional[Any] = None


class HealthResponse(BaseModel):
    status: str
    message: str


class ServiceHealthResponse(BaseModel):
    status: str
    providers: Dict[str, Dict[str, Any]]
    searchIndex: Optional[Dict[str, int]] = None


# =======================
# ANALYZE
# =======================

class RiskAnalysis(BaseModel):
    flags: List[str]
    warnings: List[str]
    positives: List[str]


class RiskScoreResponse(BaseModel):
    score: int
    classification: str
    recommendation: str


class ValidationResponse(BaseModel):
    isValid: bool
    errors: List[str]
    warnings: List[str]
    quality: str
    completeness: float


class AnalyzeResponse(BaseModel):
    data: Dict[str, Any]
    riskAnalysis: RiskAnalysis
    riskScore: RiskScoreResponse
    validation: ValidationResponse


# =======================
# SEARCH
# =======================

class SearchResult(BaseModel):
    id: str
    name: str
    symbol: Optional[str] = None
    type: str
    source: str
    logo: Optional[str] = None
    tvl: Optional[float] = None
    marketCap: Optional[float] = None
    marketCapRank: Optional[int] = None
    chains: List[str] = []
    category: Optional[str] = None


class SearchResponse(BaseModel):
    query: str
    results: List[SearchResult]
    total: int
    responseTime: str
