from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional

class Settings(BaseSettings):
    PROJECT_NAME: str = "Meal Planner API"
    API_V1_STR: str = "/api/v1"
    ROOT_PATH: str = ""
    ENVIRONMENT: str = "development"
    SECRET_KEY: str = "your-super-secret-key"  # Default for dev, override in prod
    ALGORITHM: str = "HS256"

    # Database
    DATABASE_URL: str = "sqlite:///./mealprep.db"

    # CORS
    CORS_ORIGINS: List[str] = [
        "http://localhost:9002",
        "http://localhost:3000"
    ]

    # Logging
    LOGGING_CONFIG: str = "logging.ini"
    LOG_SAMPLE_RATE: float = 0.05
    LOG_SLOW_THRESHOLD_MS: int = 500

    # Rate limiting (AI endpoints only)
    RATE_LIMIT_ENABLED: bool = True
    AI_RATE_LIMIT: str = "10/minute"

    # AI recipe generator
    AI_GENERATOR_URL: Optional[str] = None
    AI_GENERATOR_API_KEY: Optional[str] = None
    AI_GENERATOR_TIMEOUT_SECONDS: float = 60.0
    AI_MAX_RETRIES: int = 2
    AI_BACKOFF_SECONDS: float = 1.0
    AI_MAX_BATCH_SIZE: int = 10

    # Meal planning
    WEEK_START_WEEKDAY: int = 0  # Monday, as in date.weekday()
    DEFAULT_SERVINGS: int = 4

    model_config = SettingsConfigDict(case_sensitive=True, env_file=".env")

settings = Settings()
