"""
Application Configuration
"""
import os

class Config:
    """Base configuration"""
    # Secret keys
    SECRET_KEY = os.environ.get('SECRET_KEY', 'dev-secret-key-change-in-production')

    # Identity provider tokens
    JWT_SECRET = os.environ.get('JWT_SECRET', 'jwt-secret-change-in-production')
    JWT_ALGORITHM = os.environ.get('JWT_ALGORITHM', 'HS256')
    JWT_AUDIENCE = os.environ.get('JWT_AUDIENCE')  # e.g. the Firebase project id
    JWT_ISSUER = os.environ.get('JWT_ISSUER')

    # Database
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        'DATABASE_URI',
        'sqlite:///kuppi_hub.db'
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_pre_ping': True,
        'pool_recycle': 300
    }

    # Hierarchy reads are cacheable at the edge
    HIERARCHY_CACHE_CONTROL = 'public, s-maxage=300, stale-while-revalidate=60'

    # CORS
    CORS_ORIGINS = [
        'http://localhost:3000',
        'http://127.0.0.1:3000'
    ]

    # Rate limiting
    RATELIMIT_ENABLED = True
    RATELIMIT_DEFAULT = "200 per day"
    RATELIMIT_STORAGE_URI = "memory://"

    # Logging
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    LOG_FORMAT = '%(asctime)s | %(levelname)-8s | %(name)s | %(funcName)s:%(lineno)d | %(message)s'


class DevelopmentConfig(Config):
    """Development configuration"""
    DEBUG = True

    JWT_SECRET = os.environ.get('JWT_SECRET', 'dev-jwt-key-do-not-use-in-production')

    # More permissive CORS
    CORS_ORIGINS = ['*']

    # Less restrictive rate limiting
    RATELIMIT_DEFAULT = "1000 per day"


class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False

    # Restrict CORS
    CORS_ORIGINS = [
        'https://kuppihub.lk',
        'https://www.kuppihub.lk'
    ]

    RATELIMIT_DEFAULT = "100 per day"
    RATELIMIT_STORAGE_URI = os.environ.get('REDIS_URL', 'memory://')


class TestingConfig(Config):
    """Testing configuration"""
    TESTING = True
    SECRET_KEY = 'test-secret-key'
    JWT_SECRET = 'test-jwt-secret'
    JWT_AUDIENCE = None
    JWT_ISSUER = None
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_ENGINE_OPTIONS = {}
    RATELIMIT_ENABLED = False
    LOG_LEVEL = 'WARNING'


# Configuration dictionary
config_dict = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}
