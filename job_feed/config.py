from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    # App
    app_name: str = "Job Feed"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 8000

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = "data/app.log"

    # Cache
    cache_duration_seconds: float = 60.0
    default_hours: int = 24

    # Scraping
    request_timeout_seconds: float = 15.0
    # Sources without a publish time get one minute per position in the listing
    position_step_ms: int = 60_000
    min_budget: int = 50
    workana_url: str = (
        "https://www.workana.com/jobs?category=it-programming&language=es&publication=1d"
    )
    freelancer_url: str = (
        "https://www.freelancer.com.ar/search/projects?types=hourly,fixed&projectLanguages=es"
        "&projectSort=latest&projectSkills=2335,1668,1384,55,1658,3,9,13,69,305,335,500,607,"
        "669,704,759,1031,2376,2688,2719,2791&projectFixedPriceMin=50&projectHourlyRateMin=10"
    )

    # Telegram
    telegram_bot_token: Optional[str] = None
    telegram_chat_id: Optional[str] = None

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
