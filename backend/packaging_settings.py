# backend/packaging_settings.py

"""
Service configuration, read from the environment (backend/.env via python-dotenv).

    MONGO_URL               mongodb://localhost:27017
    DB_NAME                 warehouse
    PACKAGING_COLLECTION    packaging_types
    STOCK_COLLECTION        stock_records
    CORS_ORIGINS            comma separated, defaults to local frontends
    LOG_LEVEL               INFO
    DISPLAY_DECIMAL_PLACES  3
"""

from pathlib import Path
from typing import List
import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field

ROOT_DIR = Path(__file__).parent
load_dotenv(ROOT_DIR / '.env')

# Default allowed origins for local development
DEFAULT_CORS_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:5173",
    "http://127.0.0.1:5173",
]


class PackagingSettings(BaseModel):
    mongo_url: str = "mongodb://localhost:27017"
    db_name: str = "warehouse"
    packaging_collection: str = "packaging_types"
    stock_collection: str = "stock_records"
    cors_origins: List[str] = Field(default_factory=lambda: list(DEFAULT_CORS_ORIGINS))
    log_level: str = "INFO"
    display_decimal_places: int = Field(default=3, ge=0, le=12)


def load_settings() -> PackagingSettings:
    """Build settings from os.environ (unset variables keep their defaults)"""
    values = {}

    env_map = {
        "MONGO_URL": "mongo_url",
        "DB_NAME": "db_name",
        "PACKAGING_COLLECTION": "packaging_collection",
        "STOCK_COLLECTION": "stock_collection",
        "LOG_LEVEL": "log_level",
        "DISPLAY_DECIMAL_PLACES": "display_decimal_places",
    }
    for env_name, field_name in env_map.items():
        value = os.environ.get(env_name)
        if value:
            values[field_name] = value

    cors_origins_env = os.environ.get('CORS_ORIGINS', '')
    if cors_origins_env:
        values["cors_origins"] = [origin.strip() for origin in cors_origins_env.split(',') if origin.strip()]

    return PackagingSettings(**values)
