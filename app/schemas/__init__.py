"""
Pydantic schemas for request validation
"""
from .api_schemas import (
    AppealRequest,
    AppealReviewRequest,
    PaginationParams,
    PendingReviewParams,
    PostReviewAction,
    PostReviewActionRequest,
    PostSubmitRequest,
    ReviewAction,
    ReviewActionRequest,
    ReviewStatus,
    RiskLevel,
)

__all__ = [
    'ReviewActionRequest',
    'AppealRequest',
    'AppealReviewRequest',
    'PostSubmitRequest',
    'PostReviewActionRequest',
    'PaginationParams',
    'PendingReviewParams',
    'ReviewAction',
    'PostReviewAction',
    'ReviewStatus',
    'RiskLevel'
]
