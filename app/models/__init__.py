from .content_review import ContentReview
from .known_bad_hash import KnownBadHash
from .post_review import PostReview

__all__ = ['ContentReview', 'PostReview', 'KnownBadHash']
