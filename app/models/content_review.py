import uuid
from datetime import datetime

from app import db

REVIEW_STATUSES = ('pending', 'approved', 'rejected', 'quarantined', 'escalated')
REVIEW_ACTIONS = ('allow', 'block', 'quarantine', 'escalate')
APPEAL_STATUSES = ('pending', 'approved', 'rejected')

# status -> action applied by every review transition
STATUS_ACTIONS = {
    'approved': 'allow',
    'rejected': 'block',
    'quarantined': 'quarantine',
    'escalated': 'escalate',
}


class ContentReview(db.Model):
    """One moderated file upload and its review lifecycle"""
    __tablename__ = 'content_reviews'

    id = db.Column(db.String(36), primary_key=True,
                   default=lambda: str(uuid.uuid4()))
    original_file_name = db.Column(db.String(255), nullable=False)
    file_path = db.Column(db.String(500), nullable=False)
    # image, video
    file_type = db.Column(db.String(10), nullable=False)
    file_size = db.Column(db.BigInteger, nullable=False, default=0)

    uploaded_by = db.Column(db.String(64), nullable=False, index=True)
    upload_date = db.Column(db.DateTime, default=datetime.utcnow)

    # file_analysis, text_analysis, risk_assessment, ai_analysis, ...
    moderation_results = db.Column(db.JSON, nullable=False, default=dict)
    # Copied out of moderation_results for monitoring queries
    overall_risk = db.Column(db.String(10), index=True)
    nsfw_score = db.Column(db.Float, index=True)

    # pending, approved, rejected, quarantined, escalated
    status = db.Column(db.String(20), nullable=False, default='pending')
    # allow, block, quarantine, escalate
    action = db.Column(db.String(20), nullable=False, default='quarantine')

    reviewed_by = db.Column(db.String(64))
    review_date = db.Column(db.DateTime)
    review_notes = db.Column(db.Text)

    appeal_requested = db.Column(db.Boolean, nullable=False, default=False)
    appeal_requested_by = db.Column(db.String(64))
    appeal_requested_date = db.Column(db.DateTime)
    appeal_reason = db.Column(db.Text)
    # pending, approved, rejected; NULL until an appeal is requested
    appeal_status = db.Column(db.String(20), index=True)
    appeal_reviewed_by = db.Column(db.String(64))
    appeal_review_date = db.Column(db.DateTime)
    appeal_review_notes = db.Column(db.Text)

    version = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    updated_at = db.Column(
        db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __mapper_args__ = {'version_id_col': version}

    __table_args__ = (
        db.Index('ix_content_reviews_status_created', 'status', 'created_at'),
        db.Index('ix_content_reviews_uploader_status', 'uploaded_by', 'status'),
    )

    @property
    def needs_review(self):
        return self.status in ('pending', 'quarantined')

    @property
    def is_safe(self):
        return self.status == 'approved' and self.action == 'allow'

    @property
    def is_blocked(self):
        return self.status == 'rejected' and self.action == 'block'

    def appeal_to_dict(self):
        if not self.appeal_requested:
            return {'requested': False}
        return {
            'requested': True,
            'requested_by': self.appeal_requested_by,
            'requested_date': _iso(self.appeal_requested_date),
            'appeal_reason': self.appeal_reason,
            'appeal_status': self.appeal_status,
            'appeal_reviewed_by': self.appeal_reviewed_by,
            'appeal_review_date': _iso(self.appeal_review_date),
            'appeal_review_notes': self.appeal_review_notes
        }

    def to_dict(self):
        return {
            'id': self.id,
            'original_file_name': self.original_file_name,
            'file_path': self.file_path,
            'file_type': self.file_type,
            'file_size': self.file_size,
            'uploaded_by': self.uploaded_by,
            'upload_date': _iso(self.upload_date),
            'moderation_results': self.moderation_results,
            'overall_risk': self.overall_risk,
            'nsfw_score': self.nsfw_score,
            'status': self.status,
            'action': self.action,
            'reviewed_by': self.reviewed_by,
            'review_date': _iso(self.review_date),
            'review_notes': self.review_notes,
            'appeal': self.appeal_to_dict(),
            'needs_review': self.needs_review,
            'version': self.version,
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at)
        }

    def __repr__(self):
        return f'<ContentReview {self.id} {self.status}>'


def _iso(value):
    return value.isoformat() if value else None
