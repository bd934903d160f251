from pathlib import Path
from typing import List, Optional

from pydantic import model_validator
from pydantic_settings import BaseSettings

from .core.classifier import DEFAULT_DOMINANT_COUNT, HIGH_THRESHOLD, LOW_THRESHOLD

# Relative data paths resolve against the backend directory
BACKEND_DIR = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    """Application configuration with environment variable support"""

    # Server settings
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    DEBUG: bool = False
    RELOAD: bool = False

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = None

    # Quiz graph source (relative to backend directory)
    GRAPH_FILE: str = "data/personality_graph.json"

    # Classification settings
    DOMINANT_TRAIT_COUNT: int = DEFAULT_DOMINANT_COUNT
    LOW_LEVEL_THRESHOLD: float = LOW_THRESHOLD
    HIGH_LEVEL_THRESHOLD: float = HIGH_THRESHOLD

    # Session management
    SESSION_MAX_AGE_HOURS: int = 24
    MAX_ACTIVE_SESSIONS: int = 10000

    # CORS settings
    ALLOWED_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
        "http://127.0.0.1:5173"
    ]

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"

    @model_validator(mode="after")
    def _check_thresholds(self):
        if not 0.0 <= self.LOW_LEVEL_THRESHOLD <= self.HIGH_LEVEL_THRESHOLD <= 1.0:
            raise ValueError(
                f"thresholds must satisfy 0 <= LOW_LEVEL_THRESHOLD ({self.LOW_LEVEL_THRESHOLD}) "
                f"<= HIGH_LEVEL_THRESHOLD ({self.HIGH_LEVEL_THRESHOLD}) <= 1"
            )
        return self

    @property
    def graph_path(self) -> Path:
        path = Path(self.GRAPH_FILE)
        return path if path.is_absolute() else BACKEND_DIR / path


settings = Settings()
