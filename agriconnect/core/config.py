from typing import Annotated

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

DEFAULT_PROJECT_NAME = "AgriConnect API"
DEFAULT_DATABASE_URL = "sqlite:///./agriconnect.db"
DEFAULT_SECRET_KEY = "fallback_secret_for_development_only"
DEFAULT_ASSISTANT_MODEL_URL = "https://api-inference.huggingface.co/models/facebook/blenderbot-400M-distill"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file='.env', extra='ignore')

    PROJECT_NAME: str = DEFAULT_PROJECT_NAME
    VERSION: str = '1.0.0'
    ENV: str = 'development'
    DEBUG: bool = False

    HOST: str = '0.0.0.0'
    PORT: int = 5001

    DATABASE_URL: str = DEFAULT_DATABASE_URL
    LOG_LEVEL: str = 'INFO'
    CORS_ORIGINS: Annotated[list[str], NoDecode] = ['http://localhost:3000']

    SECRET_KEY: str = DEFAULT_SECRET_KEY
    ALGORITHM: str = 'HS256'
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7

    HUGGINGFACE_API_KEY: str = ''
    ASSISTANT_MODEL_URL: str = DEFAULT_ASSISTANT_MODEL_URL
    ASSISTANT_REQUEST_TIMEOUT: float = 10.0
    ASSISTANT_REPLY_TIMEOUT: float = 15.0

    PRIVATE_HISTORY_LIMIT: int = 20
    COMMUNITY_HISTORY_LIMIT: int = 50

    @field_validator('CORS_ORIGINS', mode='before')
    @classmethod
    def parse_cors_origins(cls, value):  # type: ignore[override]
        if isinstance(value, str):
            value = value.strip()
            if not value:
                return []
            if value == '*':
                return ['*']
            return [item.strip() for item in value.split(',') if item.strip()]
        return value


settings = Settings()
