import uuid
from datetime import datetime

from app import db


class PostReview(db.Model):
    """A non-file submission (skill, lost item, note) awaiting admin approval"""
    __tablename__ = 'post_reviews'

    id = db.Column(db.String(36), primary_key=True,
                   default=lambda: str(uuid.uuid4()))
    # lostitem, skill, note, notes, resource
    type = db.Column(db.String(20), nullable=False)
    # Domain object materialised on approval
    payload = db.Column(db.JSON, nullable=False)
    uploaded_by = db.Column(db.String(64), nullable=False, index=True)
    # pending, approved, rejected
    status = db.Column(db.String(20), nullable=False, default='pending')
    # allow, block
    action = db.Column(db.String(10), nullable=False, default='block')
    reviewed_by = db.Column(db.String(64))
    review_notes = db.Column(db.Text)
    version = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(
        db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __mapper_args__ = {'version_id_col': version}

    __table_args__ = (
        db.Index('ix_post_reviews_status_created', 'status', 'created_at'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'type': self.type,
            'payload': self.payload,
            'uploaded_by': self.uploaded_by,
            'status': self.status,
            'action': self.action,
            'reviewed_by': self.reviewed_by,
            'review_notes': self.review_notes,
            'version': self.version,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None
        }

    def __repr__(self):
        return f'<PostReview {self.type} {self.id}>'
