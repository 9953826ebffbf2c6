"""
Value types passed between the moderation layers.

A submission goes in, a ``RiskReport`` comes out of the risk engine, and the
orchestrator turns it into exactly one of ``Allow``, ``Block`` or
``Quarantine``.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional


@dataclass
class Submission:
    """One upload attempt as received from the API layer"""
    submitter_id: str
    title: str = ''
    description: str = ''
    url_fields: Dict[str, str] = field(default_factory=dict)
    file_bytes: Optional[bytes] = None
    file_name: Optional[str] = None
    mime_type: Optional[str] = None
    size_bytes: Optional[int] = None
    quarantine_requested: bool = False

    @property
    def has_file(self) -> bool:
        return self.file_bytes is not None

    @property
    def text_content(self) -> str:
        return f"{self.title or ''} {self.description or ''}"


@dataclass
class RiskReport:
    """Outcome of the risk engine for one submission"""
    moderation_results: Dict[str, Any]
    fail_fast: bool = False
    block_reason: Optional[str] = None

    @property
    def risk_assessment(self) -> Dict[str, Any]:
        return self.moderation_results['risk_assessment']

    @property
    def overall_risk(self) -> str:
        return self.risk_assessment['overall_risk']

    @property
    def factors(self) -> List[str]:
        return self.risk_assessment['factors']

    @property
    def quarantine(self) -> bool:
        return bool(self.moderation_results.get('quarantine'))


def new_moderation_results(submitter_id):
    return {
        'timestamp': datetime.utcnow().isoformat(),
        'submitter_id': submitter_id,
        'file_analysis': {},
        'text_analysis': {},
        'risk_assessment': {
            'overall_risk': 'low',
            'factors': [],
            'confidence': 0.0
        },
        'action': 'allow',
        'quarantine': False
    }


@dataclass(frozen=True)
class Allow:
    """Content may go live"""
    case_id: Optional[str] = None
    status_code = 200
    status = 'approved'


@dataclass(frozen=True)
class Block:
    """Content is refused; the reason is safe to show the submitter"""
    reason: str
    case_id: Optional[str] = None
    status_code = 400
    status = 'rejected'


@dataclass(frozen=True)
class Quarantine:
    """Content is stored but not public until a moderator decides"""
    case_id: str
    reason: str = 'Content flagged for manual review'
    status_code = 202
    status = 'quarantined'
