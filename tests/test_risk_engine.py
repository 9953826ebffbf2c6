from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from conftest import PNG_BYTES

from app.services.file_store import LocalFileStore
from app.services.moderation.decisions import Submission
from app.services.moderation.hash_checker import HashIdentityChecker
from app.services.moderation.risk_engine import KNOWN_BAD_REASON, RiskAssessmentEngine
from app.utils.errors import HashUnavailableError


class EmptyRegistry:
    def __init__(self, bad=None):
        self.bad = bad or {}

    def lookup(self, sha256):
        return self.bad.get(sha256)


@pytest.fixture
def file_store(tmp_path):
    return LocalFileStore(tmp_path / 'store')


@pytest.fixture
def registry():
    return EmptyRegistry()


@pytest.fixture
def engine(file_store, registry):
    return RiskAssessmentEngine(
        hash_checker=HashIdentityChecker(file_store, registry),
        file_store=file_store,
        max_image_size=1024
    )


def _submission(**overrides):
    fields = dict(
        submitter_id='student-1',
        title='Calculus notes',
        description='Week 3 lecture summary',
        file_bytes=PNG_BYTES,
        file_name='notes.png',
        mime_type='image/png',
        size_bytes=len(PNG_BYTES)
    )
    fields.update(overrides)
    return Submission(**fields)


def _assess(engine, file_store, submission):
    path = file_store.write(submission.file_bytes, submission.file_name)
    return engine.assess(submission, path), path


class TestTextLayer:

    def test_blocklisted_title_fails_fast(self, engine):
        report = engine.assess_text(_submission(title='adult content for sale'))
        assert report.fail_fast is True
        assert report.block_reason == 'Inappropriate content detected in text'
        assert report.overall_risk == 'high'
        assert report.risk_assessment['confidence'] == 1.0
        assert report.moderation_results['action'] == 'block'

    def test_text_block_skips_file_layers(self, engine):
        hash_checker = MagicMock()
        engine.hash_checker = hash_checker
        report = engine.assess(_submission(description='xxx'), file_path='/never/used')
        assert report.fail_fast is True
        hash_checker.check.assert_not_called()
        assert report.moderation_results['file_analysis'] == {}

    def test_suspicious_url_field_fails_fast(self, engine):
        report = engine.assess_text(_submission(url_fields={'thumbnailUrl': 'https://porn.example/x.png'}))
        assert report.fail_fast is True
        assert report.block_reason == 'Suspicious URL detected'
        assert report.moderation_results['text_analysis']['thumbnailUrl']['matched_domain'] == 'porn'

    def test_clean_text_is_low_risk(self, engine):
        report = engine.assess_text(_submission())
        assert report.fail_fast is False
        assert report.overall_risk == 'low'
        assert report.risk_assessment['confidence'] == 0.9


class TestFileLayers:

    def test_clean_file_is_low(self, engine, file_store):
        report, _ = _assess(engine, file_store, _submission())
        assert report.fail_fast is False
        assert report.overall_risk == 'low'
        assert report.factors == []
        assert report.moderation_results['file_analysis']['hash']['known_bad'] is False
        assert report.moderation_results['file_analysis']['metadata']['suspicious'] is False

    def test_unsupported_type_fails_fast(self, engine, file_store):
        report, _ = _assess(engine, file_store, _submission(mime_type='application/x-msdownload'))
        assert report.fail_fast is True
        assert report.block_reason == 'Unsupported file type'

    def test_oversized_image_is_one_medium_factor(self, engine, file_store):
        report, _ = _assess(engine, file_store, _submission(size_bytes=4096))
        assert report.fail_fast is False
        assert report.factors == ['File too large']
        assert report.overall_risk == 'medium'
        assert report.risk_assessment['confidence'] == 0.7

    def test_suspicious_filename_fails_fast(self, engine, file_store):
        report, _ = _assess(engine, file_store, _submission(file_name='naked.png'))
        assert report.fail_fast is True
        assert report.block_reason == 'Suspicious filename detected'

    def test_known_bad_hash_fails_fast_even_with_clean_text(self, file_store):
        digest = HashIdentityChecker.compute_hash(PNG_BYTES)
        registry = EmptyRegistry({digest: SimpleNamespace(source='report', confidence=0.95)})
        engine = RiskAssessmentEngine(HashIdentityChecker(file_store, registry), file_store)

        report, _ = _assess(engine, file_store, _submission())
        assert report.fail_fast is True
        assert report.block_reason == KNOWN_BAD_REASON
        assert report.overall_risk == 'high'
        assert report.moderation_results['file_analysis']['hash']['source'] == 'report'

    def test_hash_unavailable_is_a_soft_factor(self, engine, file_store):
        engine.hash_checker = MagicMock()
        engine.hash_checker.check.side_effect = HashUnavailableError('disk gone')
        report, _ = _assess(engine, file_store, _submission())
        assert report.fail_fast is False
        assert report.factors == ['File hash unavailable']
        assert report.moderation_results['file_analysis']['hash'] == {'available': False}

    def test_unreadable_metadata_sets_quarantine(self, engine, file_store):
        engine.file_store = MagicMock()
        engine.file_store.stat.side_effect = OSError('stat failed')
        report, _ = _assess(engine, file_store, _submission())
        assert report.quarantine is True
        assert 'Suspicious metadata detected' in report.factors

    def test_two_factors_are_high(self, engine, file_store):
        engine.hash_checker = MagicMock()
        engine.hash_checker.check.side_effect = HashUnavailableError('disk gone')
        report, _ = _assess(engine, file_store, _submission(size_bytes=4096))
        assert report.fail_fast is False
        assert report.overall_risk == 'high'
        assert report.risk_assessment['confidence'] == 0.8
        assert len(report.factors) == 2


def test_hash_checker_raises_when_file_missing(file_store, registry):
    checker = HashIdentityChecker(file_store, registry)
    with pytest.raises(HashUnavailableError):
        checker.check(str(file_store.root) + '/missing.png')
