"""
Classifier providers and the factory that enables them from config.

A provider is enabled when its credentials are present. The local heuristic
needs none and is always enabled; it doubles as the fallback when every
remote provider fails.
"""
import logging

import boto3
import requests
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from app.utils.errors import ProviderError

from .base import ClassifierProvider, clamp_score
from .google_vision_client import GoogleVisionProvider
from .openai_client import OpenAIModerationProvider

logger = logging.getLogger(__name__)

EXPLICIT_LABELS = [
    'Explicit Nudity',
    'Suggestive',
    'Nudity',
    'Graphic Male Nudity',
    'Graphic Female Nudity',
    'Sexual Activity',
    'Illustrated Explicit Nudity'
]

NSFW_CLASS_LABELS = ['nsfw', 'porn', 'hentai', 'sexy']

LARGE_IMAGE_BYTES = 5 * 1024 * 1024
JPEG_MARKERS = [b'\xff\xd8\xff\xe0', b'\xff\xd8\xff\xe1', b'\xff\xd8\xff\xe2']


class RekognitionProvider(ClassifierProvider):
    """AWS Rekognition moderation labels"""

    name = 'AWS Rekognition'

    def __init__(self, access_key_id, secret_access_key, region='us-east-1',
                 timeout=30.0, client=None):
        self.access_key_id = access_key_id
        self.secret_access_key = secret_access_key
        self.region = region
        self.client = client
        if self.client is None and self.is_configured():
            self.client = boto3.client(
                'rekognition',
                aws_access_key_id=access_key_id,
                aws_secret_access_key=secret_access_key,
                region_name=region,
                config=BotoConfig(
                    connect_timeout=min(timeout, 5),
                    read_timeout=timeout,
                    retries={'max_attempts': 1}
                )
            )

    def is_configured(self):
        return bool(self.access_key_id and self.secret_access_key)

    def analyze(self, image_bytes, mime_type=None):
        try:
            response = self.client.detect_moderation_labels(
                Image={'Bytes': image_bytes},
                MinConfidence=50
            )
        except (BotoCoreError, ClientError) as e:
            raise ProviderError(self.name, str(e)) from e

        labels = response.get('ModerationLabels', [])
        nsfw_score = 0.0
        for label in labels:
            if label.get('Name') in EXPLICIT_LABELS:
                nsfw_score = max(nsfw_score, label.get('Confidence', 0.0) / 100)

        return {
            'service': self.name,
            'nsfw_score': clamp_score(nsfw_score),
            'confidence': 0.9,
            'labels': [
                {'name': label.get('Name'), 'confidence': label.get('Confidence')}
                for label in labels
            ]
        }


class HuggingFaceProvider(ClassifierProvider):
    """Image classification through the Hugging Face inference API"""

    name = 'Hugging Face'

    def __init__(self, api_key, model='Falconsai/nsfw_image_detection',
                 timeout=30.0, session=None):
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.session = session or requests.Session()

    @property
    def url(self):
        return f"https://api-inference.huggingface.co/models/{self.model}"

    def is_configured(self):
        return bool(self.api_key)

    def analyze(self, image_bytes, mime_type=None):
        try:
            response = self.session.post(
                self.url,
                headers={
                    'Authorization': f"Bearer {self.api_key}",
                    'Content-Type': 'application/octet-stream'
                },
                data=image_bytes,
                timeout=self.timeout
            )
            response.raise_for_status()
            predictions = response.json()
        except requests.exceptions.RequestException as e:
            raise ProviderError(self.name, str(e)) from e
        except ValueError as e:
            raise ProviderError(self.name, f"invalid JSON response: {e}") from e

        if not isinstance(predictions, list):
            raise ProviderError(self.name, f"unexpected response: {predictions}")

        nsfw_score = 0.0
        for prediction in predictions:
            if str(prediction.get('label', '')).lower() in NSFW_CLASS_LABELS:
                nsfw_score = max(nsfw_score, prediction.get('score', 0.0))

        return {
            'service': self.name,
            'nsfw_score': clamp_score(nsfw_score),
            'confidence': 0.8,
            'predictions': predictions
        }


class LocalHeuristicProvider(ClassifierProvider):
    """Cheap byte-level signals; low confidence by construction"""

    name = 'Local Analysis'

    def analyze(self, image_bytes, mime_type=None):
        nsfw_score = 0.0
        if len(image_bytes) > LARGE_IMAGE_BYTES:
            nsfw_score += 0.1
        if any(marker in image_bytes for marker in JPEG_MARKERS):
            nsfw_score += 0.2

        return {
            'service': self.name,
            'nsfw_score': clamp_score(nsfw_score),
            'confidence': 0.3,
            'file_size': len(image_bytes)
        }


def build_providers(config):
    """Instantiate every provider whose credentials are configured"""
    timeout = config.get('AI_PROVIDER_TIMEOUT', 30)
    candidates = [
        OpenAIModerationProvider(
            config.get('OPENAI_API_KEY'),
            model=config.get('OPENAI_MODERATION_MODEL', 'omni-moderation-latest'),
            timeout=timeout
        ),
        GoogleVisionProvider(config.get('GOOGLE_VISION_API_KEY'), timeout=timeout),
        RekognitionProvider(
            config.get('AWS_ACCESS_KEY_ID'),
            config.get('AWS_SECRET_ACCESS_KEY'),
            region=config.get('AWS_REGION', 'us-east-1'),
            timeout=timeout
        ),
        HuggingFaceProvider(
            config.get('HUGGINGFACE_API_KEY'),
            model=config.get('HUGGINGFACE_MODEL', 'Falconsai/nsfw_image_detection'),
            timeout=timeout
        ),
        LocalHeuristicProvider()
    ]

    providers = [provider for provider in candidates if provider.is_configured()]
    logger.info(f"Enabled AI providers: {', '.join(p.name for p in providers)}")
    return providers
