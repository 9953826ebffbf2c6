"""
Moderator transitions on review cases, the appeal sub-flow and post reviews.

Every transition loads the case, checks the caller's expected version when
one is given, mutates it and commits through ``db_service``. A concurrent
commit is caught by the version counter and surfaces as ``StaleCaseError``.
Side effects (file deletion, publishing) run only after the commit.
"""
import logging
from datetime import datetime

from config.moderation_rules import POST_TYPE_ALIASES

from app.models.content_review import STATUS_ACTIONS

from .database_service import db_service
from .error_tracker import error_tracker
from ..utils.errors import CaseNotFoundError, DomainError, PermissionDeniedError, StaleCaseError

logger = logging.getLogger(__name__)

# review action -> resulting status
REVIEW_TRANSITIONS = {
    'approve': 'approved',
    'reject': 'rejected',
    'quarantine': 'quarantined',
    'escalate': 'escalated',
}

POST_REVIEW_ACTIONS = {
    'approve': ('approved', 'allow'),
    'reject': ('rejected', 'block'),
}


class PostPublisher:
    """Materialises approved posts into their domain collection"""

    def __init__(self):
        self._handlers = {}

    def register(self, post_type, handler):
        self._handlers[post_type] = handler

    def publish(self, post_review):
        target = POST_TYPE_ALIASES.get(post_review.type, post_review.type)
        handler = self._handlers.get(target)
        if handler is None:
            logger.warning(f"No publisher registered for {target}; post {post_review.id} not published")
            return None
        return handler(post_review.payload)


class ReviewWorkflow:

    def __init__(self, file_store, store=db_service, publisher=None, clock=datetime.utcnow,
                 tracker=error_tracker):
        self.file_store = file_store
        self.store = store
        self.publisher = publisher or PostPublisher()
        self.clock = clock
        self.tracker = tracker

    def _load_case(self, case_id, expected_version=None):
        case = self.store.get_content_review(case_id)
        if case is None:
            raise CaseNotFoundError(f"Content review {case_id} not found")
        if expected_version is not None and int(expected_version) != case.version:
            raise StaleCaseError(
                'Case was modified by another reviewer',
                {'expected_version': expected_version, 'current_version': case.version})
        return case

    def review_case(self, case_id, action, reviewer_id, notes=None, expected_version=None):
        """Apply approve, reject, quarantine or escalate to a content review"""
        if action not in REVIEW_TRANSITIONS:
            raise DomainError(f"Invalid action: {action}")

        case = self._load_case(case_id, expected_version)
        status = REVIEW_TRANSITIONS[action]

        case.status = status
        case.action = STATUS_ACTIONS[status]
        case.reviewed_by = reviewer_id
        case.review_date = self.clock()
        case.review_notes = notes or ''

        self.store.save(case)
        logger.info(f"Case {case.id} {status} by {reviewer_id}")

        if action == 'reject':
            self._remove_file(case)
        return case

    def _remove_file(self, case):
        # The rejection is committed; a leftover file is tracked, not raised
        try:
            if self.file_store.exists(case.file_path):
                self.file_store.delete(case.file_path)
        except OSError as e:
            logger.error(f"Could not delete file for rejected case {case.id}: {e}")
            self.tracker.track_error('store', f"File delete failed: {e}", case_id=case.id)

    def approve(self, case_id, reviewer_id, notes=None, expected_version=None):
        return self.review_case(case_id, 'approve', reviewer_id, notes, expected_version)

    def reject(self, case_id, reviewer_id, notes=None, expected_version=None):
        return self.review_case(case_id, 'reject', reviewer_id, notes, expected_version)

    def quarantine(self, case_id, reviewer_id, notes=None, expected_version=None):
        return self.review_case(case_id, 'quarantine', reviewer_id, notes, expected_version)

    def escalate(self, case_id, reviewer_id, notes=None, expected_version=None):
        return self.review_case(case_id, 'escalate', reviewer_id, notes, expected_version)

    def request_appeal(self, case_id, user_id, reason):
        case = self._load_case(case_id)
        if case.uploaded_by != user_id:
            raise PermissionDeniedError('Only the uploader can appeal this content')
        if case.status != 'rejected':
            raise DomainError('Only rejected content can be appealed')
        if case.appeal_requested:
            raise DomainError('Appeal already requested for this content')
        if not reason or not reason.strip():
            raise DomainError('Appeal reason is required')

        case.appeal_requested = True
        case.appeal_requested_by = user_id
        case.appeal_requested_date = self.clock()
        case.appeal_reason = reason.strip()
        case.appeal_status = 'pending'

        self.store.save(case)
        logger.info(f"Appeal requested on case {case.id} by {user_id}")
        return case

    def review_appeal(self, case_id, reviewer_id, approved, notes=None, expected_version=None):
        case = self._load_case(case_id, expected_version)
        if not case.appeal_requested or case.appeal_status != 'pending':
            raise DomainError('No pending appeal for this content')

        now = self.clock()
        case.appeal_status = 'approved' if approved else 'rejected'
        case.appeal_reviewed_by = reviewer_id
        case.appeal_review_date = now
        case.appeal_review_notes = notes or ''

        if approved:
            case.status = 'approved'
            case.action = STATUS_ACTIONS['approved']
            case.reviewed_by = reviewer_id
            case.review_date = now

        self.store.save(case)
        logger.info(f"Appeal on case {case.id} {case.appeal_status} by {reviewer_id}")
        return case

    def review_post(self, case_id, action, reviewer_id, notes=None):
        if action not in POST_REVIEW_ACTIONS:
            raise DomainError(f"Invalid action: {action}")

        review = self.store.get_post_review(case_id)
        if review is None:
            raise CaseNotFoundError(f"Post review {case_id} not found")

        status, _ = POST_REVIEW_ACTIONS[action]
        if review.status != 'pending':
            # Re-confirming a decision is a no-op; reversing one is refused
            if review.status == status:
                return review
            raise DomainError(f"Post review {case_id} is already {review.status}")

        review.status, review.action = POST_REVIEW_ACTIONS[action]
        review.reviewed_by = reviewer_id
        review.review_notes = notes or ''
        self.store.save(review)

        if action == 'approve':
            self.publisher.publish(review)
        logger.info(f"Post review {review.id} {review.status} by {reviewer_id}")
        return review
