import os
import time
from unittest.mock import MagicMock

import pytest
from conftest import PNG_BYTES, StaticProvider

from app.models.content_review import ContentReview
from app.models.post_review import PostReview
from app.services.ai.aggregator import AI_FAILURE_REASON, AIAnalysisAggregator
from app.services.database_service import DatabaseService, db_service
from app.services.moderation.decisions import Allow, Block, Quarantine, Submission
from app.services.moderation.hash_checker import HashIdentityChecker
from app.services.moderation_orchestrator import (
    AI_BLOCK_REASON,
    AI_QUARANTINE_REASON,
    POST_REVIEW_REASON,
    ModerationOrchestrator,
)
from app.utils.errors import DomainError, HashUnavailableError, StoreError


def _submission(**overrides):
    fields = dict(
        submitter_id='student-1',
        title='Campus view',
        description='Library at sunset',
        file_bytes=PNG_BYTES,
        file_name='campus.png',
        mime_type='image/png',
        size_bytes=len(PNG_BYTES)
    )
    fields.update(overrides)
    return Submission(**fields)


@pytest.fixture
def orchestrator(services):
    return services['orchestrator']


@pytest.fixture
def medium_risk(services):
    """Any real upload exceeds the image limit: exactly one soft factor"""
    services['risk_engine'].max_image_size = 16


def _use_providers(orchestrator, *providers):
    orchestrator.aggregator = AIAnalysisAggregator(list(providers), timeout=2)
    return providers


def _stored_files(services):
    return os.listdir(services['file_store'].root)


class TestFailFast:

    def test_blocklisted_title_is_blocked_before_anything_is_stored(self, orchestrator, services):
        decision = orchestrator.moderate_upload(_submission(title='adult content'))

        assert isinstance(decision, Block)
        assert decision.reason == 'Inappropriate content detected in text'
        assert decision.case_id is None
        assert _stored_files(services) == []
        assert ContentReview.query.count() == 0

    def test_unsupported_type_removes_stored_file(self, orchestrator, services):
        decision = orchestrator.moderate_upload(
            _submission(file_name='tool.exe', mime_type='application/x-msdownload'))

        assert isinstance(decision, Block)
        assert decision.reason == 'Unsupported file type'
        assert _stored_files(services) == []
        assert ContentReview.query.count() == 0

    def test_known_bad_hash_is_blocked_without_ai(self, orchestrator, services, providers):
        db_service.add_known_bad_hash(HashIdentityChecker.compute_hash(PNG_BYTES), source='report')

        decision = orchestrator.moderate_upload(_submission())

        assert isinstance(decision, Block)
        assert decision.reason == 'Known inappropriate content detected'
        assert providers[0].calls == 0
        assert _stored_files(services) == []


class TestRiskRouting:

    def test_text_only_submission_is_allowed(self, orchestrator):
        decision = orchestrator.moderate_upload(_submission(file_bytes=None))
        assert decision == Allow()

    def test_low_risk_is_approved_without_ai(self, orchestrator, providers):
        decision = orchestrator.moderate_upload(_submission())

        assert isinstance(decision, Allow)
        assert providers[0].calls == 0
        case = db_service.get_content_review(decision.case_id)
        assert case.status == 'approved'
        assert case.action == 'allow'
        assert case.overall_risk == 'low'
        assert case.nsfw_score is None
        assert os.path.exists(case.file_path)

    def test_requested_quarantine_skips_ai(self, orchestrator, providers):
        decision = orchestrator.moderate_upload(_submission(quarantine_requested=True))

        assert isinstance(decision, Quarantine)
        assert providers[0].calls == 0
        case = db_service.get_content_review(decision.case_id)
        assert case.status == 'quarantined'
        assert case.moderation_results['quarantine'] is True

    def test_high_risk_is_quarantined(self, orchestrator, services, providers, medium_risk):
        # Oversized and unhashable: two soft factors
        services['risk_engine'].hash_checker = MagicMock()
        services['risk_engine'].hash_checker.check.side_effect = HashUnavailableError('gone')

        decision = orchestrator.moderate_upload(_submission())

        assert isinstance(decision, Quarantine)
        assert decision.reason == 'Content flagged for manual review'
        assert providers[0].calls == 0
        assert db_service.get_content_review(decision.case_id).overall_risk == 'high'


class TestAIDecisions:

    def test_low_ai_score_approves(self, orchestrator, medium_risk):
        _use_providers(orchestrator, StaticProvider('Vision', score=0.1))

        decision = orchestrator.moderate_upload(_submission())

        assert isinstance(decision, Allow)
        case = db_service.get_content_review(decision.case_id)
        assert case.status == 'approved'
        assert case.overall_risk == 'medium'
        assert case.nsfw_score == pytest.approx(0.1)
        assert case.moderation_results['ai_analysis']['recommendation'] == 'allow'

    def test_high_ai_score_blocks_and_deletes_file(self, orchestrator, services, medium_risk):
        _use_providers(orchestrator, StaticProvider('Vision', score=0.95))

        decision = orchestrator.moderate_upload(_submission())

        assert isinstance(decision, Block)
        assert decision.reason == AI_BLOCK_REASON
        case = db_service.get_content_review(decision.case_id)
        assert case.status == 'rejected'
        assert case.action == 'block'
        assert not os.path.exists(case.file_path)
        assert _stored_files(services) == []

    def test_file_is_gone_before_rejected_case_is_written(self, services, medium_risk):
        class RecordingStore(DatabaseService):
            file_present_at_write = None

            def create_content_review(self, **fields):
                RecordingStore.file_present_at_write = os.path.exists(fields['file_path'])
                return super().create_content_review(**fields)

        orchestrator = ModerationOrchestrator(
            services['risk_engine'],
            AIAnalysisAggregator([StaticProvider('Vision', score=0.9)], timeout=2),
            services['file_store'],
            store=RecordingStore()
        )

        orchestrator.moderate_upload(_submission())

        assert RecordingStore.file_present_at_write is False

    def test_moderate_ai_score_quarantines(self, orchestrator, medium_risk):
        _use_providers(orchestrator, StaticProvider('Vision', score=0.6))

        decision = orchestrator.moderate_upload(_submission())

        assert isinstance(decision, Quarantine)
        assert decision.reason == AI_QUARANTINE_REASON
        case = db_service.get_content_review(decision.case_id)
        assert case.status == 'quarantined'
        assert os.path.exists(case.file_path)

    def test_review_band_approves_by_default(self, orchestrator, medium_risk):
        _use_providers(orchestrator, StaticProvider('Vision', score=0.4))
        decision = orchestrator.moderate_upload(_submission())
        assert isinstance(decision, Allow)

    def test_review_band_can_quarantine(self, orchestrator, medium_risk):
        _use_providers(orchestrator, StaticProvider('Vision', score=0.4))
        orchestrator.treat_review_as_quarantine = True

        decision = orchestrator.moderate_upload(_submission())

        assert isinstance(decision, Quarantine)
        assert decision.reason == AI_QUARANTINE_REASON

    def test_ai_failure_quarantines(self, orchestrator, medium_risk):
        orchestrator.aggregator = AIAnalysisAggregator(
            [StaticProvider('Vision', error='down')],
            fallback=StaticProvider('Fallback', error='down'),
            timeout=2
        )

        decision = orchestrator.moderate_upload(_submission())

        assert isinstance(decision, Quarantine)
        assert decision.reason == AI_FAILURE_REASON
        case = db_service.get_content_review(decision.case_id)
        assert case.status == 'quarantined'
        assert case.moderation_results['ai_analysis']['failed'] is True

    def test_deadline_exceeded_quarantines(self, services, medium_risk):
        class SlowAggregator:
            def analyze(self, image_bytes, mime_type=None):
                time.sleep(1.0)
                return {'recommendation': 'allow', 'overall_nsfw_score': 0.0}

        orchestrator = ModerationOrchestrator(
            services['risk_engine'], SlowAggregator(), services['file_store'], deadline=0.1)

        decision = orchestrator.moderate_upload(_submission())

        assert isinstance(decision, Quarantine)
        assert decision.reason == AI_FAILURE_REASON


def test_unwritable_store_raises_store_error(services):
    class BrokenFileStore:
        def write(self, data, filename=None):
            raise PermissionError('read-only filesystem')

    orchestrator = ModerationOrchestrator(
        services['risk_engine'], services['aggregator'], BrokenFileStore())

    with pytest.raises(StoreError):
        orchestrator.moderate_upload(_submission())


@pytest.mark.parametrize('quarantine_requested', [False, True])
def test_failed_case_write_removes_stored_file(services, quarantine_requested):
    class FailingStore(DatabaseService):
        def create_content_review(self, **fields):
            raise StoreError('Database operation failed')

    orchestrator = ModerationOrchestrator(
        services['risk_engine'], services['aggregator'], services['file_store'],
        store=FailingStore())

    with pytest.raises(StoreError):
        orchestrator.moderate_upload(_submission(quarantine_requested=quarantine_requested))

    assert _stored_files(services) == []


class TestPosts:

    def test_clean_post_is_queued(self, orchestrator):
        decision = orchestrator.moderate_post(
            'skill', {'title': 'Guitar lessons', 'description': 'Beginner friendly'}, 'student-1')

        assert isinstance(decision, Quarantine)
        assert decision.reason == POST_REVIEW_REASON
        review = db_service.get_post_review(decision.case_id)
        assert review.status == 'pending'
        assert review.type == 'skill'
        assert review.payload['title'] == 'Guitar lessons'

    def test_blocklisted_post_is_blocked(self, orchestrator):
        decision = orchestrator.moderate_post(
            'lostitem', {'title': 'nsfw stuff', 'description': ''}, 'student-1')

        assert isinstance(decision, Block)
        assert PostReview.query.count() == 0

    def test_unknown_post_type(self, orchestrator):
        with pytest.raises(DomainError):
            orchestrator.moderate_post('event', {'title': 'Party'}, 'student-1')
