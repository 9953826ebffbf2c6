from datetime import datetime

from app import db


class KnownBadHash(db.Model):
    """Registry of SHA-256 digests of files known to be disallowed"""
    __tablename__ = 'known_bad_hashes'

    sha256 = db.Column(db.String(64), primary_key=True)
    source = db.Column(db.String(100), default='manual')
    confidence = db.Column(db.Float, default=1.0)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            'sha256': self.sha256,
            'source': self.source,
            'confidence': self.confidence,
            'created_at': self.created_at.isoformat() if self.created_at else None
        }

    def __repr__(self):
        return f'<KnownBadHash {self.sha256[:12]}>'
