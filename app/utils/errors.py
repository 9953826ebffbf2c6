"""
Exception hierarchy for the moderation pipeline.

Content that fails a check is a normal return value, never an exception.
These classes cover infrastructure failures and workflow misuse.
"""


class ModerationError(Exception):
    """Base class for moderation errors"""

    status_code = 500
    error_code = 'MODERATION_ERROR'

    def __init__(self, message, details=None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ProviderError(ModerationError):
    """A classifier provider failed (timeout, transport or auth error)"""

    error_code = 'PROVIDER_ERROR'

    def __init__(self, provider, message, details=None):
        super().__init__(f"{provider}: {message}", details)
        self.provider = provider


class AggregationFailure(ModerationError):
    """No provider, including the local fallback, produced a result"""

    error_code = 'AGGREGATION_FAILURE'


class HashUnavailableError(ModerationError):
    """The uploaded file could not be read for hashing"""

    error_code = 'HASH_UNAVAILABLE'


class StoreError(ModerationError):
    """Persisting or loading a case failed"""

    error_code = 'STORE_ERROR'


class DomainError(ModerationError):
    """Workflow misuse; never mutates state"""

    status_code = 400
    error_code = 'DOMAIN_ERROR'


class CaseNotFoundError(DomainError):
    status_code = 404
    error_code = 'CASE_NOT_FOUND'


class PermissionDeniedError(DomainError):
    status_code = 403
    error_code = 'PERMISSION_DENIED'


class StaleCaseError(DomainError):
    """The case changed since the caller last read it"""

    status_code = 409
    error_code = 'STALE_CASE'
