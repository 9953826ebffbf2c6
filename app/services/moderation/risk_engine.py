import logging

from app.utils.errors import HashUnavailableError

from .decisions import RiskReport, new_moderation_results
from .validators import (
    DEFAULT_MAX_IMAGE_SIZE,
    DEFAULT_MAX_VIDEO_SIZE,
    is_hard_violation,
    validate_file_name,
    validate_file_type,
    validate_text,
    validate_url,
)

logger = logging.getLogger(__name__)

KNOWN_BAD_REASON = 'Known inappropriate content detected'


class RiskAssessmentEngine:
    """
    Runs the validation layers in order and scores the submission.

    Hard violations (a high-risk invalid result, or a known-bad hash) stop
    the run and produce a fail-fast block. Everything else is a soft signal
    that accumulates into ``factors``:

        0 factors -> low (0.9), 1 -> medium (0.7), 2+ -> high (0.8)
    """

    def __init__(self, hash_checker=None, file_store=None,
                 max_image_size=DEFAULT_MAX_IMAGE_SIZE,
                 max_video_size=DEFAULT_MAX_VIDEO_SIZE):
        self.hash_checker = hash_checker
        self.file_store = file_store
        self.max_image_size = max_image_size
        self.max_video_size = max_video_size

    def assess(self, submission, file_path=None):
        """Run every layer; text first, then the stored file if any"""
        report = self.assess_text(submission)
        if report.fail_fast or file_path is None:
            return report
        return self.assess_file(report, submission, file_path)

    def assess_text(self, submission):
        """Title/description and URL fields; runs before anything is stored"""
        results = new_moderation_results(submission.submitter_id)

        text_result = validate_text(submission.text_content)
        results['text_analysis'] = dict(text_result)
        if is_hard_violation(text_result):
            return self._fail_fast(results, text_result['error'])

        for field_name, url in submission.url_fields.items():
            if not url:
                continue
            url_result = validate_url(url)
            results['text_analysis'][field_name] = url_result
            if is_hard_violation(url_result):
                return self._fail_fast(results, url_result['error'])

        return self._score(RiskReport(results))

    def assess_file(self, report, submission, file_path):
        results = report.moderation_results
        factors = results['risk_assessment']['factors']
        file_analysis = results['file_analysis']

        # Layer 1: file type and size
        type_result = validate_file_type(
            submission.mime_type, submission.size_bytes or 0,
            self.max_image_size, self.max_video_size)
        file_analysis['file_type'] = type_result
        if is_hard_violation(type_result):
            return self._fail_fast(results, type_result['error'])
        if not type_result['valid']:
            factors.append(type_result['error'])

        # Layer 2: filename
        name_result = validate_file_name(submission.file_name)
        file_analysis['file_name'] = name_result
        if is_hard_violation(name_result):
            return self._fail_fast(results, name_result['error'])

        # Layer 3: content hash
        if self.hash_checker is not None:
            try:
                hash_result = self.hash_checker.check(file_path)
            except HashUnavailableError as e:
                logger.warning(f"Continuing without hash result: {e.message}")
                file_analysis['hash'] = {'available': False}
                factors.append('File hash unavailable')
            else:
                file_analysis['hash'] = hash_result
                if hash_result['known_bad']:
                    return self._fail_fast(results, KNOWN_BAD_REASON)

        # Layer 4: image metadata
        if type_result.get('file_type') == 'image':
            metadata = self._analyze_metadata(file_path)
            file_analysis['metadata'] = metadata
            if metadata['suspicious']:
                factors.append('Suspicious metadata detected')
                results['quarantine'] = True

        scored = self._score(report)
        logger.info(
            f"Risk assessment for {submission.file_name}: "
            f"{scored.overall_risk} ({len(scored.factors)} factors)")
        return scored

    def _analyze_metadata(self, file_path):
        if self.file_store is None:
            return {'suspicious': False, 'risk_level': 'low'}
        try:
            stats = self.file_store.stat(file_path)
            return {
                'file_size': stats.st_size,
                'modified': stats.st_mtime,
                'suspicious': False,
                'risk_level': 'low'
            }
        except (OSError, ValueError) as e:
            logger.error(f"Error analyzing image metadata: {e}")
            return {
                'suspicious': True,
                'risk_level': 'medium',
                'error': 'Could not analyze metadata'
            }

    @staticmethod
    def _score(report):
        assessment = report.risk_assessment
        factor_count = len(assessment['factors'])
        if factor_count == 0:
            assessment['overall_risk'] = 'low'
            assessment['confidence'] = 0.9
        elif factor_count == 1:
            assessment['overall_risk'] = 'medium'
            assessment['confidence'] = 0.7
        else:
            assessment['overall_risk'] = 'high'
            assessment['confidence'] = 0.8
        return report

    @staticmethod
    def _fail_fast(results, reason):
        assessment = results['risk_assessment']
        assessment['overall_risk'] = 'high'
        assessment['factors'].append(reason)
        assessment['confidence'] = 1.0
        results['action'] = 'block'
        return RiskReport(results, fail_fast=True, block_reason=reason)
