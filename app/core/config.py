from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):

    PROJECT_NAME: str = "Job Costing API"
    DATABASE_URL: str = "mysql+pymysql://user:password@db:3306/jobcosting"
    SECRET_KEY: str = "change-me-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"
    LOG_FILE: Optional[str] = None
    AUDIT_LOG_FILE: Optional[str] = "./logs/audit.log"

    DEFAULT_PAGE_SIZE: int = 10
    MAX_PAGE_SIZE: int = 100

    # Job-event webhook; notifications are only logged when unset
    JOB_WEBHOOK_URL: Optional[str] = None
    NOTIFY_MAX_ATTEMPTS: int = 3
    NOTIFY_TIMEOUT_SECONDS: float = 5.0

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
