"""
Common interface for image classifier providers
"""

_MAGIC_NUMBERS = [
    (b'\x89PNG\r\n\x1a\n', 'image/png'),
    (b'\xff\xd8\xff', 'image/jpeg'),
    (b'GIF87a', 'image/gif'),
    (b'GIF89a', 'image/gif'),
]


def sniff_image_type(data, default='image/jpeg'):
    """Best-effort MIME type from the leading bytes of an image"""
    for magic, mime_type in _MAGIC_NUMBERS:
        if data.startswith(magic):
            return mime_type
    if data[:4] == b'RIFF' and data[8:12] == b'WEBP':
        return 'image/webp'
    return default


class ClassifierProvider:
    """
    A single NSFW classifier.

    Subclasses implement ``analyze`` and return a dict with at least
    ``nsfw_score`` and ``confidence`` (both in [0, 1]), or raise
    ``ProviderError``. ``is_configured`` reports whether the credentials the
    provider needs were present at startup.
    """

    name = 'provider'

    def is_configured(self):
        return True

    def analyze(self, image_bytes, mime_type=None):
        raise NotImplementedError

    def __repr__(self):
        return f"<{self.__class__.__name__} {self.name}>"


def clamp_score(value):
    return max(0.0, min(1.0, float(value or 0.0)))
