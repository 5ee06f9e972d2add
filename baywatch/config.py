"""Application configuration loaded from environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = "baywatch"
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8000

    # Vision API (Trio)
    vision_base_url: str = "https://trio.machinefi.com/api"
    vision_api_key: str = ""
    # Public URL the vision provider can reach us at (webhook target)
    public_base_url: str = "http://localhost:8000"
    http_timeout_seconds: float = 30.0

    # NOAA feeds
    ndbc_base_url: str = "https://www.ndbc.noaa.gov/data/realtime2"
    coops_base_url: str = "https://api.tidesandcurrents.noaa.gov/api/prod/datagetter"
    coops_application: str = "BaywatchAI"

    # Scheduling
    demo_poll_interval_seconds: float = 30.0
    conservative_poll_interval_seconds: float = 300.0
    environmental_interval_seconds: float = 300.0
    inter_call_delay_seconds: float = 3.0

    # Daily budget
    check_once_daily_limit: int = 50
    check_once_near_limit: int = 45
    live_minutes_daily_limit: int = 30
    live_minutes_per_trigger: int = 10

    # Narrative digest
    digest_window_minutes: int = 3
    digest_capture_interval_seconds: int = 30

    # Store bounds
    max_alerts_per_zone: int = 50
    max_errors: int = 20

    # Start one continuous monitor on the first online zone at boot
    auto_start_monitor: bool = False

    model_config = {"env_prefix": "BAYWATCH_"}

    @property
    def webhook_url(self) -> str:
        return f"{self.public_base_url.rstrip('/')}/api/webhooks/trio"


settings = Settings()
