from pydantic_settings import BaseSettings, SettingsConfigDict


class ReminderSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="REMINDER_", env_file=".env", extra="ignore")

    # Delivery channel recorded in the ledger
    CHANNEL: str = "whatsapp"

    # Task start: remind this many minutes ahead, +/- tolerance
    TASK_START_LEAD_MINUTES: int = 60
    TASK_START_TOLERANCE_MINUTES: int = 7

    # Weekly review: window opens at the scheduled minute and stays open this long
    WEEKLY_REVIEW_TOLERANCE_MINUTES: int = 9
    WEEKLY_REVIEW_DEFAULT_TIME: str = "22:00"

    # Body caps (gateway payload limits)
    TASK_START_MAX_LENGTH: int = 1500
    TASK_CREATED_MAX_LENGTH: int = 1500
    WEEKLY_REVIEW_MAX_LENGTH: int = 1800

    # Outbound HTTP timeout for the messaging gateway, seconds
    GATEWAY_TIMEOUT_SECONDS: int = 15


settings = ReminderSettings()
