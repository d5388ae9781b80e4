from pydantic_settings import BaseSettings
from dotenv import load_dotenv, find_dotenv
from os import getenv
from typing import Optional

_env_path = find_dotenv()  # locate a .env file in this folder or parent folders
if _env_path:
    load_dotenv(_env_path)


class Settings(BaseSettings):
    SERVICE_NAME: str = getenv('SERVICE_NAME', 'my-list-api')
    LOG_LEVEL: str = getenv('LOG_LEVEL', 'INFO')

    # Database related
    DB_HOST_IP: Optional[str] = getenv('DB_HOST_IP')
    DB_USER: Optional[str] = getenv('DB_USER')
    DB_PASSWORD: Optional[str] = getenv('DB_PASSWORD')
    DB_NAME: Optional[str] = getenv('DB_NAME')
    # Full SQLAlchemy URL; takes precedence over the DB_* parts when set
    DATABASE_URL: Optional[str] = getenv('DATABASE_URL')

    # Cache related
    REDIS_URL: str = getenv('REDIS_URL', 'redis://localhost:6379/0')
    CACHE_BACKEND: str = getenv('CACHE_BACKEND', 'redis')  # 'redis' or 'memory'
    CACHE_TTL_SECONDS: int = int(getenv('CACHE_TTL_SECONDS', '300'))
    CACHE_NAMESPACE: str = getenv('CACHE_NAMESPACE', 'mylist')

    # Pagination bounds
    DEFAULT_PAGE_LIMIT: int = int(getenv('DEFAULT_PAGE_LIMIT', '10'))
    MAX_PAGE_LIMIT: int = int(getenv('MAX_PAGE_LIMIT', '100'))

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return f"postgresql+psycopg2://{self.DB_USER}:{self.DB_PASSWORD}@{self.DB_HOST_IP}:5432/{self.DB_NAME}"


settings = Settings()
