import os

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name, default=False):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def _env_list(name, default=None):
    value = os.environ.get(name)
    if not value:
        return list(default or [])
    return [item.strip() for item in value.split(',') if item.strip()]


class Config:
    SECRET_KEY = os.environ.get(
        'SECRET_KEY') or 'dev-secret-key-change-in-production'
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        'DATABASE_URL') or 'sqlite:///unicon_moderation.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SENTRY_DSN = os.environ.get('SENTRY_DSN')
    FLASK_ENV = os.environ.get('FLASK_ENV', 'development')

    # Database connection preference
    USE_DIRECT_POSTGRES = bool(os.environ.get(
        'DATABASE_URL', '').startswith('postgresql://'))

    # SQLAlchemy connection pool configuration (ignored by SQLite)
    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_pre_ping': True,
        'pool_recycle': 1800,
        'echo': bool(os.environ.get('SQL_DEBUG', False))
    } if USE_DIRECT_POSTGRES else {}

    # Upload intake
    UPLOAD_FOLDER = os.environ.get('UPLOAD_FOLDER', 'uploads')
    MAX_IMAGE_SIZE = int(os.environ.get(
        'MAX_IMAGE_SIZE', str(10 * 1024 * 1024)))
    MAX_VIDEO_SIZE = int(os.environ.get(
        'MAX_VIDEO_SIZE', str(100 * 1024 * 1024 * 1024)))
    # Request bodies are read into memory, so the HTTP cap stays well below MAX_VIDEO_SIZE
    MAX_UPLOAD_SIZE = int(os.environ.get(
        'MAX_UPLOAD_SIZE', str(100 * 1024 * 1024)))
    MAX_CONTENT_LENGTH = MAX_UPLOAD_SIZE
    # Form fields checked as external URLs
    URL_FIELDS = _env_list('URL_FIELDS', ['thumbnailUrl'])

    # Classifier providers; a provider is enabled when its credentials exist
    OPENAI_API_KEY = os.environ.get('OPENAI_API_KEY')
    OPENAI_MODERATION_MODEL = os.environ.get(
        'OPENAI_MODERATION_MODEL', 'omni-moderation-latest')
    GOOGLE_VISION_API_KEY = os.environ.get('GOOGLE_VISION_API_KEY')
    AWS_ACCESS_KEY_ID = os.environ.get('AWS_ACCESS_KEY_ID')
    AWS_SECRET_ACCESS_KEY = os.environ.get('AWS_SECRET_ACCESS_KEY')
    AWS_REGION = os.environ.get('AWS_REGION', 'us-east-1')
    HUGGINGFACE_API_KEY = os.environ.get('HUGGINGFACE_API_KEY')
    HUGGINGFACE_MODEL = os.environ.get(
        'HUGGINGFACE_MODEL', 'Falconsai/nsfw_image_detection')

    # Seconds each provider may take before it is excluded
    AI_PROVIDER_TIMEOUT = float(os.environ.get('AI_PROVIDER_TIMEOUT', '30'))
    # Bound on the whole AI step of one submission
    MODERATION_DEADLINE = float(os.environ.get(
        'MODERATION_DEADLINE', str(AI_PROVIDER_TIMEOUT * 2)))
    AI_RESULT_CACHE_TTL = int(os.environ.get('AI_RESULT_CACHE_TTL', '3600'))
    # Route the 0.3-0.5 "review" band to quarantine instead of approval
    TREAT_REVIEW_AS_QUARANTINE = _env_bool('TREAT_REVIEW_AS_QUARANTINE')

    # Notification channels
    DISCORD_WEBHOOK_URL = os.environ.get('DISCORD_WEBHOOK_URL')
    SLACK_WEBHOOK_URL = os.environ.get('SLACK_WEBHOOK_URL')
    SMTP_HOST = os.environ.get('SMTP_HOST')
    SMTP_PORT = int(os.environ.get('SMTP_PORT', '587'))
    SMTP_USERNAME = os.environ.get('SMTP_USERNAME') or os.environ.get('ADMIN_EMAIL')
    SMTP_PASSWORD = os.environ.get('SMTP_PASSWORD') or os.environ.get(
        'ADMIN_EMAIL_PASSWORD')
    ALERT_EMAIL_FROM = os.environ.get(
        'ALERT_EMAIL_FROM') or os.environ.get('ADMIN_EMAIL')
    ALERT_EMAIL_RECIPIENTS = _env_list('ALERT_EMAIL_RECIPIENTS')
    FRONTEND_URL = os.environ.get('FRONTEND_URL', 'http://localhost:5173')

    # Alert thresholds
    ALERT_HIGH_RISK_UPLOADS = int(os.environ.get('ALERT_HIGH_RISK_UPLOADS', '5'))
    ALERT_NSFW_DETECTIONS = int(os.environ.get('ALERT_NSFW_DETECTIONS', '3'))
    ALERT_NSFW_SCORE = float(os.environ.get('ALERT_NSFW_SCORE', '0.8'))
    ALERT_QUARANTINE_QUEUE = int(os.environ.get('ALERT_QUARANTINE_QUEUE', '10'))
    ALERT_APPEAL_BACKLOG = int(os.environ.get('ALERT_APPEAL_BACKLOG', '5'))
    ALERT_SUSPICIOUS_USER_REJECTIONS = int(os.environ.get(
        'ALERT_SUSPICIOUS_USER_REJECTIONS', '3'))
    ALERT_WINDOW_SECONDS = int(os.environ.get('ALERT_WINDOW_SECONDS', '3600'))

    # Monitor cadence
    MONITORING_ENABLED = _env_bool('MONITORING_ENABLED', True)
    MONITOR_INTERVAL_SECONDS = int(os.environ.get(
        'MONITOR_INTERVAL_SECONDS', '300'))
    DAILY_REPORT_INTERVAL_SECONDS = int(os.environ.get(
        'DAILY_REPORT_INTERVAL_SECONDS', '86400'))

    # Security headers
    FORCE_HTTPS = _env_bool('FORCE_HTTPS', True)


class DevelopmentConfig(Config):
    DEBUG = True
    FORCE_HTTPS = _env_bool('FORCE_HTTPS', False)


class ProductionConfig(Config):
    DEBUG = False


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_ENGINE_OPTIONS = {}
    SENTRY_DSN = None
    FORCE_HTTPS = False
    MONITORING_ENABLED = False
    AI_PROVIDER_TIMEOUT = 2.0
    MODERATION_DEADLINE = 4.0
    # Provider credentials are never read from the environment in tests
    OPENAI_API_KEY = None
    GOOGLE_VISION_API_KEY = None
    AWS_ACCESS_KEY_ID = None
    AWS_SECRET_ACCESS_KEY = None
    HUGGINGFACE_API_KEY = None
    DISCORD_WEBHOOK_URL = None
    SLACK_WEBHOOK_URL = None
    SMTP_HOST = None


config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}
