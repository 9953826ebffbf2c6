"""Monitoring and health check endpoints"""
from flask import Blueprint, current_app, jsonify

from app.services.error_tracker import error_tracker

monitoring_bp = Blueprint('monitoring', __name__)


@monitoring_bp.route('/health')
def health_check():
    """Basic health check endpoint for load balancers and uptime monitoring"""
    return jsonify({
        'status': 'healthy',
        'service': 'UniCon Moderation'
    })


@monitoring_bp.route('/health/moderation')
def moderation_health():
    """Provider availability, recent errors and monitor state"""
    services = current_app.extensions['moderation']
    aggregator = services['aggregator']
    monitor = services['monitor']
    error_stats = error_tracker.get_error_stats()

    status = 'healthy'
    if error_stats['errors_last_5min'] > 0:
        status = 'degraded'

    response = {
        'status': status,
        'providers': aggregator.provider_names,
        'provider_timeout': aggregator.timeout,
        'errors': error_stats,
        'recent_errors': error_tracker.get_recent_errors(limit=10),
        'monitor': monitor.status() if monitor else {'running': False}
    }
    if aggregator.cache is not None:
        response['cache'] = aggregator.cache.get_cache_stats()
    return jsonify(response)
