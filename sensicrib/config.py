"""Application configuration loaded from environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings

from sensicrib.domain.enums import AggregationPolicy, SoundPolicy, WeightPolicy


class Settings(BaseSettings):
    app_name: str = "sensicrib-monitor"
    debug: bool = False
    log_level: str = "INFO"

    # Monitored subject; change events for other subjects are ignored
    subject_id: str | None = None

    # Policy selection
    aggregation_policy: AggregationPolicy = AggregationPolicy.UNIFORM_COUNT
    sound_policy: SoundPolicy = SoundPolicy.DECAY
    weight_policy: WeightPolicy = WeightPolicy.DELTA

    # Notification timing (seconds)
    cooldown_seconds: float = 5.0
    popup_auto_hide_seconds: float = 5.0
    suppression_seconds: float = 60.0
    push_notifications: bool = True

    # Temporal filters
    sound_decay_seconds: float = 5.0
    weight_history_size: int = 5

    # Display refresh throttling (seconds)
    sound_display_interval_seconds: float = 1.0
    weight_display_interval_seconds: float = 2.0

    # Seed the 0-2 year defaults before the store sends its own
    seed_default_thresholds: bool = True

    # Alert history
    history_max_entries: int = 500

    model_config = {"env_prefix": "SENSICRIB_"}


settings = Settings()
