import base64

import requests

from app.utils.errors import ProviderError

from .base import ClassifierProvider, clamp_score

VISION_URL = 'https://vision.googleapis.com/v1/images:annotate'

LIKELIHOOD_SCORES = {
    'VERY_UNLIKELY': 0.1,
    'UNLIKELY': 0.3,
    'POSSIBLE': 0.5,
    'LIKELY': 0.7,
    'VERY_LIKELY': 0.9
}

NSFW_LABEL_KEYWORDS = ['adult', 'nude', 'explicit', 'sexual', 'pornographic']


def likelihood_score(likelihood):
    return LIKELIHOOD_SCORES.get(likelihood, 0.0)


class GoogleVisionProvider(ClassifierProvider):
    """SafeSearch and label detection through the Cloud Vision REST API"""

    name = 'Google Vision'

    def __init__(self, api_key, timeout=30.0, session=None):
        self.api_key = api_key
        self.timeout = timeout
        self.session = session or requests.Session()

    def is_configured(self):
        return bool(self.api_key)

    def analyze(self, image_bytes, mime_type=None):
        payload = {
            'requests': [{
                'image': {'content': base64.b64encode(image_bytes).decode('ascii')},
                'features': [
                    {'type': 'SAFE_SEARCH_DETECTION', 'maxResults': 1},
                    {'type': 'LABEL_DETECTION', 'maxResults': 10}
                ]
            }]
        }
        try:
            response = self.session.post(
                VISION_URL,
                params={'key': self.api_key},
                json=payload,
                timeout=self.timeout
            )
            response.raise_for_status()
            body = response.json()
        except requests.exceptions.RequestException as e:
            raise ProviderError(self.name, str(e)) from e
        except ValueError as e:
            raise ProviderError(self.name, f"invalid JSON response: {e}") from e

        annotation = (body.get('responses') or [{}])[0]
        if 'error' in annotation:
            raise ProviderError(self.name, annotation['error'].get('message', 'unknown error'))

        safe_search = annotation.get('safeSearchAnnotation') or {}
        labels = annotation.get('labelAnnotations') or []

        nsfw_score = 0.0
        if safe_search:
            nsfw_score = max(
                likelihood_score(safe_search.get('adult')),
                likelihood_score(safe_search.get('violence')),
                likelihood_score(safe_search.get('racy'))
            )

        nsfw_labels = [
            label for label in labels
            if any(keyword in label.get('description', '').lower()
                   for keyword in NSFW_LABEL_KEYWORDS)
        ]
        if nsfw_labels:
            nsfw_score = max(nsfw_score, 0.7)

        return {
            'service': self.name,
            'nsfw_score': clamp_score(nsfw_score),
            'confidence': 0.9,
            'safe_search': safe_search,
            'labels': [
                {'description': label.get('description'), 'score': label.get('score')}
                for label in labels
            ]
        }
