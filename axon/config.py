"""Application configuration module."""

from pathlib import Path
from typing import List
from pydantic import BaseSettings, validator

DEFAULT_WORD_DATA_DIR = str(Path(__file__).parent / "content" / "data")


class Settings(BaseSettings):
    """Application settings."""
    
    # Database settings
    DATABASE_URL: str = "sqlite+aiosqlite:///./axon.db"
    SQL_ECHO: bool = False
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_TIMEOUT: int = 30
    AUTO_CREATE_SCHEMA: bool = True
    
    # Logging settings
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s | %(levelname)-8s | %(name)-30s | %(message)s"
    LOG_JSON: bool = False
    
    # API settings
    API_PREFIX: str = "/api"
    PROJECT_NAME: str = "Axon Brain Training"
    ALLOW_ORIGINS: List[str] = ["http://localhost:3000"]
    ENV: str = "development"
    
    # Content settings
    WORD_DATA_DIR: str = DEFAULT_WORD_DATA_DIR
    EXCLUSION_SESSION_WINDOW: int = 3
    EXCLUSION_RETENTION: int = 10
    
    # Follow-up task settings
    FOLLOWUP_MAX_RETRIES: int = 2
    FOLLOWUP_RETRY_DELAY: float = 0.5
    
    @validator("ENV")
    def validate_env(cls, v):
        """Validate environment"""
        valid_envs = ["development", "testing", "staging", "production"]
        if v.lower() not in valid_envs:
            raise ValueError(f"Invalid environment: {v}. Must be one of {valid_envs}")
        return v.lower()
    
    @validator("LOG_LEVEL")
    def validate_level(cls, v):
        """Validate log level"""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v.upper()
    
    @validator("EXCLUSION_SESSION_WINDOW", "EXCLUSION_RETENTION")
    def validate_positive(cls, v):
        """Exclusion windows must cover at least one record"""
        if v < 1:
            raise ValueError(f"Exclusion window must be at least 1, got {v}")
        return v
    
    @property
    def is_development(self) -> bool:
        """Check if environment is development"""
        return self.ENV == "development"
    
    class Config:
        """Pydantic settings config."""
        env_file = ".env"
        case_sensitive = True

# Create global settings instance
settings = Settings()
