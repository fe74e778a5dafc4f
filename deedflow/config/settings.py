"""Application Settings - Central Configuration"""
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Case store
    store_backend: str = "memory"  # memory | mongo
    mongo_uri: str = "mongodb://localhost:27017"
    mongo_db: str = "deedflow_dev"
    cases_collection: str = "cases"

    # Workflow engine
    commit_max_retries: int = 3  # Data writes only; transitions never retry
    auto_progress: bool = False  # Advance along auto edges after a clearance is recorded

    # Logging
    logs_path: str = "./logs"
    log_level: str = "INFO"

    # Environment
    environment: str = "development"
    debug: bool = True

    @property
    def uses_mongo(self) -> bool:
        """Check if the MongoDB case store is configured"""
        return self.store_backend.lower() == "mongo"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


settings = get_settings()
