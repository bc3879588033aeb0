from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    # Supabase
    supabase_url: str = ""
    supabase_key: str = Field(
        default="",
        validation_alias=AliasChoices("SUPABASE_KEY", "SUPABASE_SECRET_KEY"),
    )

    # Telegram (ops alerts)
    telegram_bot_token: str = ""
    telegram_chat_id: str = ""

    # Recommendations
    timezone: str = "America/Montreal"
    rec_cache_ttl_seconds: int = 3600
    cache_sweep_minutes: int = 60
    taste_window_days: int = 30
    decay_half_life_days: float = 30.0
    candidate_pool_size: int = 200
    favorites_limit: int = 100
    active_user_days: int = 90
    taste_recompute_hour: int = 3

    # App
    base_url: str = "http://localhost:8000"
    log_level: str = "INFO"


settings = Settings()
