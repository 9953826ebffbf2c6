"""
Pydantic schemas for API request validation
"""
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, validator

from config.moderation_rules import POST_TYPE_ALIASES


class ReviewAction(str, Enum):
    """Moderator transitions on a content review"""
    APPROVE = "approve"
    REJECT = "reject"
    QUARANTINE = "quarantine"
    ESCALATE = "escalate"


class PostReviewAction(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"


class ReviewStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    QUARANTINED = "quarantined"
    ESCALATED = "escalated"


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ReviewActionRequest(BaseModel):
    """Schema for POST /api/moderation/review/<case_id>"""
    action: ReviewAction
    notes: Optional[str] = Field(default=None, max_length=2000)
    expected_version: Optional[int] = Field(default=None, alias='expectedVersion', ge=1)

    class Config:
        extra = "forbid"
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "action": "approve",
                "notes": "Reviewed, nothing inappropriate",
                "expectedVersion": 1
            }
        }


class AppealRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=2000)

    @validator('reason')
    def validate_reason(cls, v):
        if not v.strip():
            raise ValueError('Appeal reason cannot be empty or only whitespace')
        return v.strip()

    class Config:
        extra = "forbid"


class AppealReviewRequest(BaseModel):
    approved: bool
    notes: Optional[str] = Field(default=None, max_length=2000)
    expected_version: Optional[int] = Field(default=None, alias='expectedVersion', ge=1)

    class Config:
        extra = "forbid"
        populate_by_name = True


class PostSubmitRequest(BaseModel):
    """Schema for POST /api/posts"""
    type: str
    payload: Dict[str, Any]

    @validator('type')
    def validate_type(cls, v):
        v = v.strip().lower()
        if v not in POST_TYPE_ALIASES:
            raise ValueError(f"type must be one of {', '.join(sorted(POST_TYPE_ALIASES))}")
        return v

    @validator('payload')
    def validate_payload(cls, v):
        # Prevent oversized payloads from landing in the review queue
        if len(str(v)) > 20000:
            raise ValueError('Payload too large')
        return v

    class Config:
        extra = "forbid"
        json_schema_extra = {
            "example": {
                "type": "skill",
                "payload": {"title": "Guitar lessons", "description": "Beginner friendly"}
            }
        }


class PostReviewActionRequest(BaseModel):
    action: PostReviewAction
    notes: Optional[str] = Field(default=None, max_length=2000)

    class Config:
        extra = "forbid"


class PaginationParams(BaseModel):
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1, le=100)


class PendingReviewParams(PaginationParams):
    status: Optional[ReviewStatus] = None
    risk_level: Optional[RiskLevel] = Field(default=None, alias='riskLevel')

    class Config:
        populate_by_name = True
