from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env")

    CARE_API_BASE_URL: str = "https://healthcare-backend-production-124c.up.railway.app/api"

    EMERGENCY_BASE_COST: int = 200000
    SYNC_INTERVAL_SECONDS: float = 30

    MAX_CART_ITEMS: int = 20

    REQUEST_RETRIES: int = 3
    RETRY_DELAY_SECONDS: float = 2


settings = Settings()
