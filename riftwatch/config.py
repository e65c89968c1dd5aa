# config.py – Settings loaded via pydantic-settings

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # ─── Riot API ───
    RIOT_API_KEY: str = ""
    DEFAULT_REGION: str = "euw1"

    # ─── Cache ───
    CACHE_ENABLED: bool = True

    # ─── Logging ───
    LOG_LEVEL: str = "INFO"

    # ─── Rate limiting (dev key quota: 20 req/1 s, 100 req/120 s) ───
    RATE_LIMIT_PER_SECOND: int = 20
    RATE_LIMIT_PER_2_MINUTES: int = 100
    MAX_RETRIES: int = 3
    RETRY_BASE_DELAY: float = 1.0  # seconds, doubled on each retry

    # ─── HTTP ───
    HTTP_TIMEOUT: float = 10.0
    MATCH_BATCH_SIZE: int = 10

    # ─── Data Dragon ───
    DDRAGON_URL: str = "https://ddragon.leagueoflegends.com"
    DDRAGON_LOCALE: str = "en_US"

    # ─── Status endpoint ───
    HEALTH_HOST: str = "0.0.0.0"
    HEALTH_PORT: int = 8000

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

settings = Settings()
