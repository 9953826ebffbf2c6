"""
File intake and text validation layers.

Every validator is a pure function returning a result dict with at least
``valid`` and ``risk_level``. Bad content is a normal return value.
"""
import re

from config.moderation_rules import (
    ALLOWED_IMAGE_TYPES,
    ALLOWED_VIDEO_TYPES,
    SUSPICIOUS_DOMAINS,
    SUSPICIOUS_PATTERNS,
)

DEFAULT_MAX_IMAGE_SIZE = 10 * 1024 * 1024
DEFAULT_MAX_VIDEO_SIZE = 100 * 1024 * 1024 * 1024

_COMPILED_PATTERNS = [re.compile(p, re.IGNORECASE) for p in SUSPICIOUS_PATTERNS]


def validate_file_type(mime_type, size_bytes, max_image_size=DEFAULT_MAX_IMAGE_SIZE,
                       max_video_size=DEFAULT_MAX_VIDEO_SIZE):
    """Classify an upload as image or video and enforce the size limit"""
    mime_type = (mime_type or '').lower()
    is_image = mime_type in ALLOWED_IMAGE_TYPES
    is_video = mime_type in ALLOWED_VIDEO_TYPES

    if not is_image and not is_video:
        return {
            'valid': False,
            'error': 'Unsupported file type',
            'risk_level': 'high'
        }

    max_size = max_image_size if is_image else max_video_size
    if size_bytes > max_size:
        return {
            'valid': False,
            'error': 'File too large',
            'risk_level': 'medium',
            'file_type': 'image' if is_image else 'video'
        }

    return {
        'valid': True,
        'risk_level': 'low',
        'file_type': 'image' if is_image else 'video'
    }


def _match_patterns(text, patterns=None):
    for pattern in patterns or _COMPILED_PATTERNS:
        if pattern.search(text):
            return pattern.pattern
    return None


def validate_text(text, patterns=None):
    """Check free text (title and description) against the blocklist"""
    matched = _match_patterns(text or '', patterns)
    if matched:
        return {
            'valid': False,
            'error': 'Inappropriate content detected in text',
            'risk_level': 'high',
            'matched_pattern': matched
        }
    return {'valid': True, 'risk_level': 'low'}


def validate_file_name(file_name, patterns=None):
    """Check an uploaded filename against the blocklist"""
    matched = _match_patterns(file_name or '', patterns)
    if matched:
        return {
            'valid': False,
            'error': 'Suspicious filename detected',
            'risk_level': 'high',
            'matched_pattern': matched
        }
    return {'valid': True, 'risk_level': 'low'}


def validate_url(url, domains=None):
    """Check an external URL for blocklisted domain or path fragments"""
    lower_url = (url or '').lower()
    for domain in domains or SUSPICIOUS_DOMAINS:
        if domain in lower_url:
            return {
                'valid': False,
                'error': 'Suspicious URL detected',
                'risk_level': 'high',
                'matched_domain': domain
            }
    return {'valid': True, 'risk_level': 'low'}


def is_hard_violation(result):
    """True when a result must block immediately instead of accumulating"""
    return not result.get('valid', True) and result.get('risk_level') == 'high'
