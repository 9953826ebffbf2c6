import base64

import httpx
import openai

from app.utils.errors import ProviderError

from .base import ClassifierProvider, clamp_score, sniff_image_type

# Moderation categories that count towards the NSFW score
NSFW_CATEGORIES = ['sexual', 'sexual_minors', 'violence_graphic']


class OpenAIModerationProvider(ClassifierProvider):
    """Image moderation through OpenAI's omni moderation model"""

    name = 'OpenAI Moderation'

    _client = None
    _api_key = None

    def __init__(self, api_key, model='omni-moderation-latest', timeout=30.0):
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.client = self._get_or_create_client(api_key, timeout) if api_key else None

    @classmethod
    def _get_or_create_client(cls, api_key, timeout):
        """Create or reuse the OpenAI client with a pooled HTTP client"""
        if cls._client is None or cls._api_key != api_key:
            http_client = httpx.Client(
                timeout=httpx.Timeout(
                    connect=3.0,
                    read=timeout,
                    write=5.0,
                    pool=2.0
                ),
                limits=httpx.Limits(
                    max_keepalive_connections=20,
                    max_connections=100,
                    keepalive_expiry=300.0
                )
            )

            cls._client = openai.OpenAI(
                api_key=api_key,
                http_client=http_client,
                max_retries=1
            )
            cls._api_key = api_key

        return cls._client

    def is_configured(self):
        return self.api_key is not None and self.client is not None

    def analyze(self, image_bytes, mime_type=None):
        if not self.is_configured():
            raise ProviderError(self.name, 'API key not configured')

        mime_type = mime_type or sniff_image_type(image_bytes)
        encoded = base64.b64encode(image_bytes).decode('ascii')
        try:
            response = self.client.moderations.create(
                model=self.model,
                input=[{
                    'type': 'image_url',
                    'image_url': {'url': f"data:{mime_type};base64,{encoded}"}
                }]
            )
        except (openai.APIConnectionError, openai.APITimeoutError) as e:
            raise ProviderError(self.name, f"connection failed: {e}") from e
        except openai.OpenAIError as e:
            raise ProviderError(self.name, f"API error: {e}") from e

        result = response.results[0]
        scores = {
            category: getattr(result.category_scores, category, 0.0) or 0.0
            for category in NSFW_CATEGORIES
        }
        return {
            'service': self.name,
            'nsfw_score': clamp_score(max(scores.values())),
            'confidence': 0.9,
            'flagged': bool(result.flagged),
            'category_scores': scores
        }
