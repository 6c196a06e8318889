"""
paperbrief Configuration
Supports AWS Parameter Store for production secrets
"""
import logging
import os

try:
    import boto3
except ImportError:
    boto3 = None

logger = logging.getLogger(__name__)


def get_parameter(name: str, default: str = "") -> str:
    """Get parameter from AWS Parameter Store or environment"""
    # Environment variable takes precedence
    env_key = name.upper().replace("-", "_").replace("/", "_")
    if env_key in os.environ:
        return os.environ[env_key]

    if boto3 and os.environ.get("USE_PARAMETER_STORE"):
        try:
            ssm = boto3.client("ssm", region_name=os.environ.get("AWS_REGION", "us-west-2"))
            path = os.environ.get("PARAMETER_STORE_PATH", "/paperbrief/prod/")
            response = ssm.get_parameter(Name=f"{path}{name}", WithDecryption=True)
            return response["Parameter"]["Value"]
        except Exception as e:
            logger.warning("Could not load %s from Parameter Store: %s", name, e)

    return default


def _database_url(url: str) -> str:
    # Render and Heroku still hand out postgres:// URLs
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql://", 1)
    return url


class Config:
    """Base configuration"""
    # Flask
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-change-in-production")
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Database
    SQLALCHEMY_DATABASE_URI = _database_url(os.environ.get("DATABASE_URL", "sqlite:///paperbrief.db"))
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {"pool_pre_ping": True}

    # File uploads
    MAX_CONTENT_LENGTH = 50 * 1024 * 1024  # 50MB

    # Identity tokens
    IDENTITY_TOKEN_SALT = os.environ.get("IDENTITY_TOKEN_SALT", "paperbrief-identity")
    IDENTITY_TOKEN_MAX_AGE = int(os.environ.get("IDENTITY_TOKEN_MAX_AGE", "86400"))

    # OpenAI
    OPENAI_API_KEY = os.environ.get("OPENAI_API_KEY", "")
    OPENAI_MODEL = os.environ.get("OPENAI_MODEL", "gpt-4.1")
    OPENAI_TIMEOUT = float(os.environ.get("OPENAI_TIMEOUT", "120"))
    AI_MAX_RETRIES = 3
    AI_OVERLOAD_BACKOFF = 1.2  # seconds, doubled per retry on 503
    AI_NETWORK_BACKOFF = 0.8  # seconds, doubled per retry on connection errors

    # Summarizer
    LONG_DOC_THRESHOLD = 12000
    CHUNK_SIZE = 9000
    MAX_TEXT_CHARS = 12000
    MAX_MODEL_IMAGES = 4
    AUTO_PDF_PAGES = 2
    PDF_TEXT_PAGE_CAP = 20
    IMAGE_MAX_WIDTH = 1400
    IMAGE_QUALITY = 80
    DEFAULT_SUMMARY_TITLE = os.environ.get("DEFAULT_SUMMARY_TITLE", "Academic Summary")

    # Listing limits
    HISTORY_LIMIT = 50
    SUMMARIES_LIMIT = 30

    # App Version
    APP_VERSION = os.environ.get("APP_VERSION", "2026.10")
    BUILD_TIME = os.environ.get("BUILD_TIME", "")
    GIT_COMMIT = os.environ.get("GIT_COMMIT", "")


class DevelopmentConfig(Config):
    """Development configuration"""
    DEBUG = True
    TESTING = False
    LOG_LEVEL = "DEBUG"


class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False
    TESTING = False

    # Override with Parameter Store in production
    SECRET_KEY = get_parameter("secret-key", Config.SECRET_KEY)
    OPENAI_API_KEY = get_parameter("openai-api-key", Config.OPENAI_API_KEY)
    SQLALCHEMY_DATABASE_URI = _database_url(get_parameter("database-url", Config.SQLALCHEMY_DATABASE_URI))


class TestingConfig(Config):
    """Testing configuration"""
    DEBUG = True
    TESTING = True
    SECRET_KEY = "test-secret-key"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_ENGINE_OPTIONS = {}
    OPENAI_API_KEY = "test-openai-key"
    AI_OVERLOAD_BACKOFF = 0
    AI_NETWORK_BACKOFF = 0


config = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
    "default": DevelopmentConfig,
}


def get_config(env: str = None):
    """Get configuration by environment name"""
    env = env or os.environ.get("FLASK_ENV", "development")
    return config.get(env, config["default"])
