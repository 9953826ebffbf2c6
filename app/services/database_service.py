"""
Centralized Database Service Layer for the moderation pipeline
Synchronous store operations with consistent error handling
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from app import db
from app.models.content_review import ContentReview
from app.models.known_bad_hash import KnownBadHash
from app.models.post_review import PostReview
from app.services.error_tracker import error_tracker
from app.utils.errors import StaleCaseError, StoreError

logger = logging.getLogger(__name__)

REVIEW_QUEUE_STATUSES = ('pending', 'quarantined')


class DatabaseService:
    """Centralized database operations with consistent error handling"""

    def _safe_execute(self, operation_func, *args, **kwargs):
        """Run a store operation; roll back and raise StoreError on failure"""
        try:
            return operation_func(*args, **kwargs)
        except StaleDataError as e:
            db.session.rollback()
            logger.warning(f"Stale write rejected: {e}")
            raise StaleCaseError('Case was modified by another reviewer') from e
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"Database error: {str(e)}")
            error_tracker.track_error('store', str(e))
            raise StoreError('Database operation failed', {'cause': str(e)}) from e

    def save(self, obj):
        """Commit pending changes on an already loaded object"""
        def _save():
            db.session.add(obj)
            db.session.commit()
            return obj

        return self._safe_execute(_save)

    # Content review operations
    def create_content_review(self, **fields) -> ContentReview:
        def _create():
            review = ContentReview(**fields)
            db.session.add(review)
            db.session.commit()
            return review

        return self._safe_execute(_create)

    def get_content_review(self, case_id: str) -> Optional[ContentReview]:
        def _get():
            return db.session.get(ContentReview, case_id)

        return self._safe_execute(_get)

    def get_pending_reviews(self, status: str = None, risk_level: str = None,
                            page: int = 1, per_page: int = 20) -> Tuple[List[ContentReview], int]:
        """Review queue, newest first; defaults to pending and quarantined"""
        def _get_pending():
            query = ContentReview.query
            if status:
                query = query.filter(ContentReview.status == status)
            else:
                query = query.filter(ContentReview.status.in_(REVIEW_QUEUE_STATUSES))
            if risk_level:
                query = query.filter(ContentReview.overall_risk == risk_level)

            total = query.count()
            items = query.order_by(ContentReview.created_at.desc()).offset(
                (page - 1) * per_page).limit(per_page).all()
            return items, total

        return self._safe_execute(_get_pending)

    def get_user_reviews(self, user_id: str, page: int = 1,
                         per_page: int = 20) -> Tuple[List[ContentReview], int]:
        def _get_user_reviews():
            query = ContentReview.query.filter_by(uploaded_by=user_id)
            total = query.count()
            items = query.order_by(ContentReview.created_at.desc()).offset(
                (page - 1) * per_page).limit(per_page).all()
            return items, total

        return self._safe_execute(_get_user_reviews)

    def get_review_statistics(self, now: datetime = None) -> Dict[str, Any]:
        """Counts by status, risk and action, plus the last 7 days"""
        now = now or datetime.utcnow()

        def _grouped(column, since=None):
            query = db.session.query(column, func.count(ContentReview.id))
            if since is not None:
                query = query.filter(ContentReview.created_at >= since)
            return {key: count for key, count in query.group_by(column).all() if key is not None}

        def _get_stats():
            week_ago = now - timedelta(days=7)
            return {
                'total': ContentReview.query.count(),
                'by_status': _grouped(ContentReview.status),
                'by_risk': _grouped(ContentReview.overall_risk),
                'by_action': _grouped(ContentReview.action),
                'recent_activity': _grouped(ContentReview.status, since=week_ago),
                'pending_appeals': ContentReview.query.filter_by(appeal_status='pending').count()
            }

        return self._safe_execute(_get_stats)

    # Known-bad hash registry
    def lookup(self, sha256: str) -> Optional[KnownBadHash]:
        def _lookup():
            return db.session.get(KnownBadHash, sha256)

        return self._safe_execute(_lookup)

    def add_known_bad_hash(self, sha256: str, source: str = 'manual',
                           confidence: float = 1.0) -> KnownBadHash:
        def _add():
            entry = db.session.get(KnownBadHash, sha256)
            if entry is None:
                entry = KnownBadHash(sha256=sha256, source=source, confidence=confidence)
                db.session.add(entry)
                db.session.commit()
            return entry

        return self._safe_execute(_add)

    # Monitoring queries
    def count_high_risk_since(self, since: datetime) -> int:
        def _count():
            return ContentReview.query.filter(
                ContentReview.overall_risk == 'high',
                ContentReview.created_at >= since
            ).count()

        return self._safe_execute(_count)

    def count_nsfw_since(self, since: datetime, threshold: float = 0.8) -> int:
        def _count():
            return ContentReview.query.filter(
                ContentReview.nsfw_score >= threshold,
                ContentReview.created_at >= since
            ).count()

        return self._safe_execute(_count)

    def count_review_queue(self) -> int:
        def _count():
            return ContentReview.query.filter(
                ContentReview.status.in_(REVIEW_QUEUE_STATUSES)).count()

        return self._safe_execute(_count)

    def count_pending_appeals(self) -> int:
        def _count():
            return ContentReview.query.filter_by(appeal_status='pending').count()

        return self._safe_execute(_count)

    def get_rejections_by_uploader_since(self, since: datetime,
                                         minimum: int = 1) -> List[Tuple[str, int]]:
        """(uploaded_by, rejected count) for uploaders at or above ``minimum``"""
        def _get_rejections():
            count = func.count(ContentReview.id)
            rows = db.session.query(ContentReview.uploaded_by, count).filter(
                ContentReview.status == 'rejected',
                ContentReview.created_at >= since
            ).group_by(ContentReview.uploaded_by).having(count >= minimum).all()
            return [(uploaded_by, total) for uploaded_by, total in rows]

        return self._safe_execute(_get_rejections)

    def get_daily_counts(self, start: datetime, end: datetime) -> Dict[str, Any]:
        def _get_counts():
            window = (ContentReview.created_at >= start, ContentReview.created_at < end)
            by_status = db.session.query(
                ContentReview.status, func.count(ContentReview.id)
            ).filter(*window).group_by(ContentReview.status).all()
            by_risk = db.session.query(
                ContentReview.overall_risk, func.count(ContentReview.id)
            ).filter(*window).group_by(ContentReview.overall_risk).all()
            by_status = {key: count for key, count in by_status if key is not None}
            return {
                'total': sum(by_status.values()),
                'by_status': by_status,
                'by_risk': {key: count for key, count in by_risk if key is not None}
            }

        return self._safe_execute(_get_counts)

    # Post review operations
    def create_post_review(self, post_type: str, payload: Dict[str, Any],
                           uploaded_by: str) -> PostReview:
        def _create():
            review = PostReview(type=post_type, payload=payload, uploaded_by=uploaded_by)
            db.session.add(review)
            db.session.commit()
            return review

        return self._safe_execute(_create)

    def get_post_review(self, case_id: str) -> Optional[PostReview]:
        def _get():
            return db.session.get(PostReview, case_id)

        return self._safe_execute(_get)

    def get_pending_post_reviews(self, page: int = 1,
                                 per_page: int = 20) -> Tuple[List[PostReview], int]:
        def _get_pending():
            query = PostReview.query.filter_by(status='pending')
            total = query.count()
            items = query.order_by(PostReview.created_at.desc()).offset(
                (page - 1) * per_page).limit(per_page).all()
            return items, total

        return self._safe_execute(_get_pending)


# Global database service instance
db_service = DatabaseService()
