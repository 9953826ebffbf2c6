import logging
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError

from config.moderation_rules import POST_TYPE_ALIASES

from .ai.aggregator import AI_FAILURE_REASON, failed_result
from .database_service import db_service
from .error_tracker import error_tracker
from .moderation.decisions import Allow, Block, Quarantine, Submission
from ..utils.errors import DomainError, StoreError

logger = logging.getLogger(__name__)

AI_BLOCK_REASON = 'AI detected inappropriate content'
AI_QUARANTINE_REASON = 'AI flagged content for review'
POST_REVIEW_REASON = 'Post submitted for admin review'


class ModerationOrchestrator:
    """
    Pipeline entry point: runs the risk engine, consults the AI aggregator
    for medium-risk files and turns the outcome into a decision.

    Decision table for files that pass the fail-fast checks:

        high risk or quarantine flag -> quarantined / quarantine
        medium risk                  -> AI recommendation
        low risk                     -> approved / allow
    """

    def __init__(self, risk_engine, aggregator, file_store, store=db_service,
                 deadline=60.0, treat_review_as_quarantine=False, tracker=error_tracker):
        self.risk_engine = risk_engine
        self.aggregator = aggregator
        self.file_store = file_store
        self.store = store
        self.deadline = deadline
        self.treat_review_as_quarantine = treat_review_as_quarantine
        self.tracker = tracker

    def moderate_upload(self, submission):
        report = self.risk_engine.assess_text(submission)
        if report.fail_fast:
            logger.info(f"Blocked submission from {submission.submitter_id}: {report.block_reason}")
            return Block(report.block_reason)

        if not submission.has_file:
            return Allow()

        file_path = self._store_file(submission)
        report = self.risk_engine.assess_file(report, submission, file_path)
        if report.fail_fast:
            self.file_store.delete(file_path)
            logger.info(
                f"Blocked upload {submission.file_name} from "
                f"{submission.submitter_id}: {report.block_reason}")
            return Block(report.block_reason)

        results = report.moderation_results
        if report.overall_risk == 'high' or report.quarantine or submission.quarantine_requested:
            case = self._persist(submission, file_path, results, 'quarantined', 'quarantine')
            return Quarantine(case.id)

        if report.overall_risk == 'medium':
            return self._decide_with_ai(submission, file_path, results)

        case = self._persist(submission, file_path, results, 'approved', 'allow')
        return Allow(case.id)

    def _decide_with_ai(self, submission, file_path, results):
        ai_analysis = self._run_ai(submission)
        results['ai_analysis'] = ai_analysis
        nsfw_score = ai_analysis.get('overall_nsfw_score')
        recommendation = ai_analysis['recommendation']

        if ai_analysis.get('failed'):
            case = self._persist(submission, file_path, results, 'quarantined',
                                 'quarantine', nsfw_score=None)
            return Quarantine(case.id, AI_FAILURE_REASON)

        if recommendation == 'block':
            # The file goes before the rejected case is written
            self.file_store.delete(file_path)
            case = self._persist(submission, file_path, results, 'rejected',
                                 'block', nsfw_score=nsfw_score)
            return Block(AI_BLOCK_REASON, case.id)

        if recommendation == 'quarantine' or (
                recommendation == 'review' and self.treat_review_as_quarantine):
            case = self._persist(submission, file_path, results, 'quarantined',
                                 'quarantine', nsfw_score=nsfw_score)
            return Quarantine(case.id, AI_QUARANTINE_REASON)

        case = self._persist(submission, file_path, results, 'approved',
                             'allow', nsfw_score=nsfw_score)
        return Allow(case.id)

    def _run_ai(self, submission):
        """Aggregator call bounded by the overall moderation deadline"""
        executor = ThreadPoolExecutor(max_workers=1)
        future = executor.submit(self.aggregator.analyze, submission.file_bytes,
                                 submission.mime_type)
        try:
            return future.result(timeout=self.deadline)
        except FutureTimeoutError:
            logger.error(f"AI analysis exceeded {self.deadline}s deadline for {submission.file_name}")
            self.tracker.track_error('moderation', f"AI deadline exceeded after {self.deadline}s")
            return failed_result(f"deadline of {self.deadline}s exceeded")
        except Exception as e:
            logger.exception(f"AI analysis raised unexpectedly: {e}")
            self.tracker.track_error('moderation', f"AI analysis raised: {e}")
            return failed_result(str(e))
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

    def _store_file(self, submission):
        try:
            return self.file_store.write(submission.file_bytes, submission.file_name)
        except OSError as e:
            logger.error(f"Could not store upload {submission.file_name}: {e}")
            self.tracker.track_error('store', f"File write failed: {e}")
            raise StoreError('Could not store uploaded file', {'cause': str(e)}) from e

    def _persist(self, submission, file_path, results, status, action, nsfw_score=None):
        results['action'] = action
        results['quarantine'] = status == 'quarantined'
        file_type = results['file_analysis'].get('file_type', {}).get('file_type', 'image')

        try:
            case = self.store.create_content_review(
                original_file_name=submission.file_name or 'upload',
                file_path=file_path,
                file_type=file_type,
                file_size=submission.size_bytes or 0,
                uploaded_by=submission.submitter_id,
                moderation_results=results,
                overall_risk=results['risk_assessment']['overall_risk'],
                nsfw_score=nsfw_score,
                status=status,
                action=action
            )
        except StoreError:
            # No case row references the file
            self.file_store.delete(file_path)
            raise
        logger.info(
            f"Case {case.id} for {submission.file_name}: {status}/{action} "
            f"(risk {case.overall_risk})")
        return case

    def moderate_post(self, post_type, payload, user_id):
        """Text checks for a non-file post, then queue it for admin approval"""
        if post_type not in POST_TYPE_ALIASES:
            raise DomainError(f"Unknown post type: {post_type}")

        payload = payload or {}
        submission = Submission(
            submitter_id=user_id,
            title=str(payload.get('title') or ''),
            description=str(payload.get('description') or '')
        )
        report = self.risk_engine.assess_text(submission)
        if report.fail_fast:
            logger.info(f"Blocked {post_type} post from {user_id}: {report.block_reason}")
            return Block(report.block_reason)

        review = self.store.create_post_review(post_type, payload, user_id)
        logger.info(f"Post review {review.id} ({post_type}) queued for {user_id}")
        return Quarantine(review.id, POST_REVIEW_REASON)
