"""Configuration settings for the gym check-in kiosk."""
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings.

    These settings are loaded from environment variables with the following precedence:
    1. Environment variables
    2. .env file
    3. Default values

    Attributes:
        MATCH_THRESHOLD: Maximum L2 distance between normalized embeddings
            that still counts as the same face. Lower is stricter.
        REQUIRED_MATCHES: Consecutive identical frame matches needed before
            a check-in is committed
        SCAN_INTERVAL_SECONDS: Pause between two camera scans
    """
    model_config = SettingsConfigDict(
        case_sensitive=True,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_prefix="",  # No prefix for environment variables
        env_nested_delimiter="__"  # Use double underscore for nested settings
    )

    # Core Settings
    PROJECT_NAME: str = "Gym Kiosk"
    VERSION: str = "0.1.0"
    ENVIRONMENT: str = "development"

    # Embedding model Settings
    MODEL_NAME: str = "buffalo_l"
    MODEL_CACHE_DIR: str = ".model_cache"
    MODEL_PROVIDERS: str = "CPUExecutionProvider"
    DETECTION_INPUT_SIZE: int = 512  # Long edge in pixels
    MIN_FACE_CONFIDENCE: float = 0.2
    MODEL_LOAD_ATTEMPTS: int = 2

    @property
    def model_providers(self) -> List[str]:
        """Get list of onnxruntime execution providers."""
        return [provider.strip() for provider in self.MODEL_PROVIDERS.split(",") if provider.strip()]

    # Matching Settings
    MATCH_THRESHOLD: float = 0.5
    STRICT_EMBEDDING_CHECKS: bool = False

    # Kiosk loop Settings
    REQUIRED_MATCHES: int = 2
    SCAN_INTERVAL_SECONDS: float = 0.8
    SUCCESS_DISPLAY_SECONDS: float = 4.0
    ERROR_DISPLAY_SECONDS: float = 3.0
    PHONE_SUFFIX_LENGTH: int = 4

    # Device Settings
    CAMERA_INDEX: int = 0

    # Ledger Settings
    LEDGER_PATH: str = "data/ledger.json"

    # Optional settings with defaults
    LOG_LEVEL: str = "INFO"

settings = Settings()
