"""
In-memory error tracking for system health monitoring
"""
import time
from collections import deque
from threading import Lock
from typing import Dict, List

ERROR_TYPES = ['provider', 'store', 'monitor', 'notification', 'moderation', 'other']


class ErrorTracker:
    """Track recent errors for monitoring and debugging"""

    # Shared error tracking across all instances
    _recent_errors = deque(maxlen=100)  # Keep last 100 errors
    _error_counts = {error_type: 0 for error_type in ERROR_TYPES}
    _lock = Lock()

    @classmethod
    def track_error(cls, error_type: str, message: str, case_id: str = None, details: Dict = None):
        """
        Track an error occurrence

        Args:
            error_type: provider, store, monitor, notification, moderation or other
            message: Error message
            case_id: Optional review case associated with the error
            details: Optional additional details
        """
        with cls._lock:
            error_entry = {
                'timestamp': time.time(),
                'type': error_type,
                'message': message,
                'case_id': case_id,
                'details': details or {}
            }
            cls._recent_errors.append(error_entry)

            if error_type in cls._error_counts:
                cls._error_counts[error_type] += 1
            else:
                cls._error_counts['other'] += 1

    @classmethod
    def get_recent_errors(cls, limit: int = 50) -> List[Dict]:
        """Get recent errors with optional limit"""
        with cls._lock:
            errors = [dict(error) for error in list(cls._recent_errors)[-limit:]]
            for error in errors:
                seconds_ago = int(time.time() - error['timestamp'])
                if seconds_ago < 60:
                    error['time_ago'] = f"{seconds_ago}s ago"
                elif seconds_ago < 3600:
                    error['time_ago'] = f"{seconds_ago // 60}m ago"
                else:
                    error['time_ago'] = f"{seconds_ago // 3600}h ago"
            return errors

    @classmethod
    def get_error_counts(cls) -> Dict[str, int]:
        with cls._lock:
            return cls._error_counts.copy()

    @classmethod
    def get_error_stats(cls) -> Dict:
        """Get comprehensive error statistics"""
        with cls._lock:
            total_errors = sum(cls._error_counts.values())
            recent_count = len(cls._recent_errors)

            # Count errors in last 5 minutes
            five_min_ago = time.time() - 300
            recent_5min = sum(1 for e in cls._recent_errors if e['timestamp'] > five_min_ago)

            return {
                'total_errors': total_errors,
                'recent_errors': recent_count,
                'errors_last_5min': recent_5min,
                'error_counts': cls._error_counts.copy()
            }

    @classmethod
    def clear_old_errors(cls, max_age_seconds: int = 3600):
        """Clear errors older than specified age (default 1 hour)"""
        with cls._lock:
            cutoff_time = time.time() - max_age_seconds
            while cls._recent_errors and cls._recent_errors[0]['timestamp'] < cutoff_time:
                cls._recent_errors.popleft()

    @classmethod
    def reset(cls):
        with cls._lock:
            cls._recent_errors.clear()
            for error_type in cls._error_counts:
                cls._error_counts[error_type] = 0


# Create singleton instance
error_tracker = ErrorTracker()
