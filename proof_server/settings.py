from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    data_dir: str = "./data"
    public_base_url: str = "http://127.0.0.1:5174"
    cors_origins: List[str] = [
        "http://localhost:5173",
        "http://127.0.0.1:5173",
        "http://localhost:5174",
        "http://127.0.0.1:5174",
    ]
    notify_webhook_url: Optional[str] = None
    notify_timeout: float = 5.0

    model_config = SettingsConfigDict(env_prefix="BATPROOF_", env_file=".env", extra="ignore")


settings = Settings()
