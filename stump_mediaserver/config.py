from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    # Stump
    STUMP_BASE_URL: str = "http://localhost:10801"
    STUMP_API_KEY: str = ""

    # Events
    EVENTS_MODE: str = "auto"  # auto, subscription, polling
    POLL_INTERVAL_SECONDS: int = 300
    POLL_PAGE_SIZE: int = 500
    POLL_DETECT_REMOVED_SERIES: bool = True
    SUBSCRIPTION_RECEIVE_TIMEOUT_SECONDS: float = 5.0
    LISTENER_TIMEOUT_SECONDS: Optional[float] = None

    # Reconnect
    RECONNECT_INITIAL_DELAY_SECONDS: float = 5.0
    RECONNECT_MAX_DELAY_SECONDS: float = 300.0
    RECONNECT_BACKOFF_FACTOR: float = 2.0
    RECONNECT_JITTER: float = 0.1
    RECONNECT_MAX_ATTEMPTS: Optional[int] = None  # unbounded
    CIRCUIT_FAILURE_THRESHOLD: int = 5
    CIRCUIT_COOLDOWN_SECONDS: int = 300

    # Writes
    UPDATE_RATE_LIMIT_EVENTS: int = 120
    UPDATE_RATE_LIMIT_INTERVAL_SECONDS: float = 60.0

    # System
    LOG_LEVEL: str = "INFO"
    HTTP_SERVER_ENABLED: bool = False
    HTTP_SERVER_PORT: int = 8080
    HTTP_SERVER_TOKEN: Optional[str] = None
    REQUEST_TIMEOUT_SECONDS: int = 30

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )

settings = Settings()
