"""Pydantic schemas package."""

from api.schemas.analysis import (
    ActiveAnalysesResponse,
    AnalysisAccepted,
    AnalysisOptionsSchema,
    AnalysisRequest,
    CancelResponse,
    CompareRequest,
)
from api.schemas.responses import ErrorDetail, ErrorResponse, SuccessResponse

__all__ = [
    "AnalysisRequest",
    "AnalysisOptionsSchema",
    "AnalysisAccepted",
    "CancelResponse",
    "CompareRequest",
    "ActiveAnalysesResponse",
    "ErrorDetail",
    "ErrorResponse",
    "SuccessResponse",
]
