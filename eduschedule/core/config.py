# eduschedule/core/config.py
"""Application configuration using Pydantic."""
from pydantic_settings import BaseSettings
from typing import List

class Settings(BaseSettings):
    database_url: str
    redis_url: str = 'redis://localhost:6379/0'

    app_name: str = 'eduschedule'
    app_version: str = '1.0.0'
    environment: str = 'development'
    log_level: str = 'INFO'
    allowed_origins: List[str] = ['*']

    # Connection pool (PostgreSQL only)
    db_pool_size: int = 15
    db_max_overflow: int = 25
    db_pool_timeout: int = 60
    db_pool_recycle: int = 1800

    # Time slot catalogue cache
    cache_enabled: bool = True
    cache_ttl_seconds: int = 300

    bulk_import_max_entries: int = 500

    model_config = {
        'env_file': '.env',
        'extra': 'ignore'
    }

settings = Settings()
