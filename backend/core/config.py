"""Application configuration via environment variables."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Project
    PROJECT_NAME: str = "Combustion Trainer Engine"
    VERSION: str = "0.1.0"
    API_V1_STR: str = "/api/v1"
    DEBUG: bool = True

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    RELOAD: bool = True

    # Logging
    LOG_LEVEL: str = "INFO"

    # Simulation
    MAX_CONCURRENT_SIMULATIONS: int = 5
    SIM_TICK_MS: int = 100
    ANALYZER_TICK_MS: int = 200
    TREND_SAMPLE_S: float = 1.0
    TREND_LENGTH: int = 600
    MAX_SAVED_READINGS: int = 100
    DEFAULT_FUEL: str = "natural_gas"
    DEFAULT_AMBIENT_F: float = 70.0
    DEFAULT_SPEED_MULTIPLIER: float = 1.0
    MIN_SPEED_MULTIPLIER: float = 0.1
    # Above 50x PTFI fits in a single tick and the pilot can never prove
    MAX_SPEED_MULTIPLIER: float = 50.0
    ANALYZER_AUTOSTART: bool = True

    # WebSocket
    WS_STREAM_INTERVAL: float = 0.5

    # CORS
    BACKEND_CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
        "http://localhost:8000",
    ]

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
