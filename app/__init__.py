import atexit
import logging
import os
import time

import sentry_sdk
from flask import Flask
from flask_login import LoginManager
from flask_sqlalchemy import SQLAlchemy
from flask_talisman import Talisman

from config.config import config

# SQLAlchemy - database interface
db = SQLAlchemy()
login_manager = LoginManager()


def create_app(config_name: str = 'default', providers=None, channels=None) -> Flask:
    """
    Application factory.

    ``providers`` and ``channels`` replace the classifier providers and
    notification channels that would otherwise be built from config.
    """
    app = Flask(__name__)
    app.config.from_object(config[config_name])

    # Initialize Sentry
    if app.config.get('SENTRY_DSN'):
        sentry_sdk.init(
            dsn=app.config['SENTRY_DSN'],
            send_default_pii=False,
            enable_logs=True,
            traces_sample_rate=1.0,
            environment=app.config.get('FLASK_ENV', 'development'),
        )

    # Handle HTTPS proxy headers (for production behind reverse proxy)
    from werkzeug.middleware.proxy_fix import ProxyFix
    app.wsgi_app = ProxyFix(app.wsgi_app, x_proto=1, x_host=1)

    db.init_app(app)
    if app.config.get('USE_DIRECT_POSTGRES', False):
        app.logger.info("Using direct PostgreSQL connection via SQLAlchemy")
    else:
        app.logger.info("Using SQLAlchemy database")

    # Identity comes from the auth gateway headers on every request
    from app.utils.access import load_actor_from_request, unauthorized_response
    login_manager.init_app(app)
    login_manager.request_loader(load_actor_from_request)
    login_manager.unauthorized_handler(unauthorized_response)

    # JSON API: no scripts, frames or embedding
    Talisman(
        app,
        force_https=app.config.get('FORCE_HTTPS', True),
        strict_transport_security=True,
        strict_transport_security_max_age=31536000,  # 1 year
        content_security_policy={'default-src': "'none'", 'frame-ancestors': "'none'"},
        referrer_policy='strict-origin-when-cross-origin',
        session_cookie_secure=app.config.get('FORCE_HTTPS', True)
    )

    # Register blueprints
    from app.routes.moderation import moderation_bp
    from app.routes.monitoring import monitoring_bp
    from app.routes.posts import post_review_bp, posts_bp

    app.register_blueprint(moderation_bp, url_prefix='/api/moderation')
    app.register_blueprint(posts_bp, url_prefix='/api/posts')
    app.register_blueprint(post_review_bp, url_prefix='/api/post-reviews')
    app.register_blueprint(monitoring_bp)

    # Database initialization with retry logic (only in main process, not reloader)
    if not os.environ.get('WERKZEUG_RUN_MAIN'):
        with app.app_context():
            _initialize_database_with_retry(app)

    _init_moderation_services(app, providers, channels)
    return app


def _init_moderation_services(app: Flask, providers=None, channels=None) -> None:
    """Build the pipeline once and expose it as app.extensions['moderation']"""
    from app.services.ai.aggregator import AIAnalysisAggregator
    from app.services.ai.providers import build_providers
    from app.services.ai.result_cache import ResultCache
    from app.services.database_service import db_service
    from app.services.file_store import LocalFileStore
    from app.services.moderation.hash_checker import HashIdentityChecker
    from app.services.moderation.risk_engine import RiskAssessmentEngine
    from app.services.moderation_orchestrator import ModerationOrchestrator
    from app.services.monitoring_service import AlertingMonitor, AlertingPolicy
    from app.services.notifications import build_channels
    from app.services.review_workflow import ReviewWorkflow

    cfg = app.config
    file_store = LocalFileStore(cfg['UPLOAD_FOLDER'])
    risk_engine = RiskAssessmentEngine(
        hash_checker=HashIdentityChecker(file_store, db_service),
        file_store=file_store,
        max_image_size=cfg['MAX_IMAGE_SIZE'],
        max_video_size=cfg['MAX_VIDEO_SIZE']
    )
    aggregator = AIAnalysisAggregator(
        providers if providers is not None else build_providers(cfg),
        timeout=cfg['AI_PROVIDER_TIMEOUT'],
        cache=ResultCache(cfg['AI_RESULT_CACHE_TTL'])
    )
    orchestrator = ModerationOrchestrator(
        risk_engine,
        aggregator,
        file_store,
        deadline=cfg['MODERATION_DEADLINE'],
        treat_review_as_quarantine=cfg['TREAT_REVIEW_AS_QUARANTINE']
    )
    workflow = ReviewWorkflow(file_store)
    monitor = AlertingMonitor(
        channels if channels is not None else build_channels(cfg),
        policy=AlertingPolicy.from_config(cfg),
        app=app
    )

    app.extensions['moderation'] = {
        'file_store': file_store,
        'risk_engine': risk_engine,
        'aggregator': aggregator,
        'orchestrator': orchestrator,
        'workflow': workflow,
        'publisher': workflow.publisher,
        'monitor': monitor
    }

    # Skip the reloader's parent process in debug mode
    in_serving_process = not app.debug or os.environ.get('WERKZEUG_RUN_MAIN') == 'true'
    if cfg.get('MONITORING_ENABLED') and in_serving_process:
        monitor.start()
        atexit.register(monitor.stop)


def _initialize_database_with_retry(app: Flask, max_retries: int = 3, delay: int = 5) -> None:
    """Initialize database with retry logic for connection pool issues"""
    logger = logging.getLogger(__name__)
    for attempt in range(max_retries):
        try:
            logger.info(f"Attempting database initialization (attempt {attempt + 1}/{max_retries})")
            db.create_all()
            logger.info("Database initialization successful")
            return
        except Exception as e:
            error_msg = str(e).lower()
            if "max clients" in error_msg or "pool" in error_msg:
                logger.warning(f"Database pool issue on attempt {attempt + 1}: {e}")
            else:
                logger.error(f"Database error: {e}")

            if attempt < max_retries - 1:
                logger.info(f"Retrying in {delay} seconds...")
                time.sleep(delay)
                delay *= 2  # Exponential backoff
            else:
                # Allow the app to start without DB init
                logger.error("Database initialization failed after all retries")
