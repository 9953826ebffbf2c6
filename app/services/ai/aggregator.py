import concurrent.futures
import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed

from app.services.error_tracker import error_tracker
from app.utils.errors import AggregationFailure, ProviderError

from .providers import LocalHeuristicProvider

logger = logging.getLogger(__name__)

AI_FAILURE_REASON = 'AI analysis failed - manual review required'

# (lower bound, recommendation, reason), checked top down
RECOMMENDATION_BANDS = [
    (0.8, 'block', 'High NSFW probability detected'),
    (0.5, 'quarantine', 'Moderate NSFW probability detected'),
    (0.3, 'review', 'Low NSFW probability detected'),
]


def recommend(score):
    """Map an aggregate NSFW score to (recommendation, reasons)"""
    for lower_bound, recommendation, reason in RECOMMENDATION_BANDS:
        if score >= lower_bound:
            return recommendation, [reason]
    return 'allow', []


def combine(analyses):
    """
    Confidence-weighted mean of the provider scores.

    Returns (overall_nsfw_score, confidence). The score is clamped to [0, 1]
    and is 0 when the total weight is 0.
    """
    if not analyses:
        raise AggregationFailure('No provider results to combine')

    total_weight = sum(a['confidence'] for a in analyses)
    if total_weight > 0:
        weighted = sum(a['nsfw_score'] * a['confidence'] for a in analyses)
        score = weighted / total_weight
    else:
        score = 0.0

    score = max(0.0, min(1.0, score))
    confidence = total_weight / len(analyses)
    return score, confidence


def failed_result(error=None):
    result = {
        'overall_nsfw_score': 0.0,
        'confidence': 0.0,
        'analyses': [],
        'recommendation': 'review',
        'reasons': [AI_FAILURE_REASON],
        'failed': True
    }
    if error:
        result['error'] = error
    return result


class AIAnalysisAggregator:
    """
    Fans an image out to every enabled provider and combines the answers.

    Provider failures and timeouts are excluded from the mean. When nothing
    succeeds the local heuristic runs directly; when that fails too the
    result asks for manual review. ``analyze`` never raises.
    """

    def __init__(self, providers, fallback=None, timeout=30, cache=None,
                 tracker=error_tracker):
        self.providers = list(providers)
        self.fallback = fallback or self._find_local(self.providers)
        self.timeout = timeout
        self.cache = cache
        self.tracker = tracker

    @staticmethod
    def _find_local(providers):
        for provider in providers:
            if isinstance(provider, LocalHeuristicProvider):
                return provider
        return LocalHeuristicProvider()

    @property
    def provider_names(self):
        return [provider.name for provider in self.providers]

    def analyze(self, image_bytes, mime_type=None):
        cache_key = None
        if self.cache is not None:
            cache_key = self.cache.generate_cache_key(image_bytes)
            cached = self.cache.get_cached_result(cache_key)
            if cached is not None:
                logger.info(f"AI result cache hit for {cache_key[:8]}...")
                return dict(cached, cached=True)

        try:
            analyses = self._run_parallel(image_bytes, mime_type)
            remote_success = bool(analyses)

            if not analyses:
                logger.warning("All AI providers failed, using local fallback")
                analyses = [self._run_fallback(image_bytes, mime_type)]

            score, confidence = combine(analyses)
        except (AggregationFailure, ProviderError) as e:
            logger.error(f"AI aggregation failed: {e.message}")
            self.tracker.track_error('provider', f"Aggregation failed: {e.message}")
            return failed_result(e.message)
        except Exception as e:
            logger.exception(f"Unexpected AI aggregation error: {e}")
            self.tracker.track_error('provider', f"Aggregation failed: {e}")
            return failed_result(str(e))

        recommendation, reasons = recommend(score)
        result = {
            'overall_nsfw_score': score,
            'confidence': confidence,
            'analyses': analyses,
            'recommendation': recommendation,
            'reasons': reasons,
            'failed': False
        }

        logger.info(
            f"AI analysis: score={score:.3f} confidence={confidence:.2f} "
            f"recommendation={recommendation} ({len(analyses)} results)")

        if cache_key and remote_success:
            self.cache.cache_result(cache_key, result)
        return result

    def _run_fallback(self, image_bytes, mime_type):
        try:
            return self._call_provider(self.fallback, image_bytes, mime_type)
        except ProviderError:
            raise
        except Exception as e:
            raise AggregationFailure(f"Fallback provider failed: {e}") from e

    @staticmethod
    def _call_provider(provider, image_bytes, mime_type):
        start_time = time.time()
        result = provider.analyze(image_bytes, mime_type)
        result.setdefault('service', provider.name)
        result['processing_time'] = time.time() - start_time
        return result

    def _run_parallel(self, image_bytes, mime_type):
        if not self.providers:
            return []

        analyses = []
        executor = ThreadPoolExecutor(max_workers=len(self.providers))
        futures = {
            executor.submit(self._call_provider, provider, image_bytes, mime_type): provider
            for provider in self.providers
        }
        try:
            for future in as_completed(futures, timeout=self.timeout):
                provider = futures[future]
                try:
                    analyses.append(future.result())
                except ProviderError as e:
                    self._record_failure(provider, e.message)
                except Exception as e:
                    self._record_failure(provider, str(e))
        except concurrent.futures.TimeoutError:
            unfinished = [futures[f] for f in futures if not f.done()]
            for provider in unfinished:
                self._record_failure(provider, f"timed out after {self.timeout}s")
        finally:
            # Timed-out provider threads are left to finish on their own
            executor.shutdown(wait=False, cancel_futures=True)

        return analyses

    def _record_failure(self, provider, message):
        logger.warning(f"{provider.name} analysis failed: {message}")
        self.tracker.track_error(
            'provider', f"{provider.name}: {message}",
            details={'provider': provider.name})
