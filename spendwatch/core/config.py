from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

EMAIL_PROVIDERS = {"log", "smtp"}
SMS_PROVIDERS = {"log", "http"}


class Settings(BaseSettings):
    """Application settings loaded from environment with defaults.

    Environment variable mapping follows pydantic's rules (e.g., APP_NAME, DEBUG, DATA_DIR, DB_FILENAME,
    EMAIL_PROVIDER, SMS_PROVIDER, THRESHOLD_CHECK_INTERVAL_MINUTES).
    """

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Basic app metadata
    app_name: str = "SpendWatch"
    debug: bool = False
    version: str = "0.1.0"

    # Data & persistence
    data_dir: Path = Path("data")
    db_filename: str = "spendwatch.sqlite3"
    db_path: Optional[Path] = None  # derived if not provided

    # Display
    currency_symbol: str = "$"

    # Alert ledger paging
    alert_page_size: int = 50
    alert_page_size_max: int = 200

    # Email channel: 'log' writes to the log only, 'smtp' delivers through smtp_host
    email_provider: str = "log"
    email_sender: str = "alerts@spendwatch.local"
    smtp_host: str = "localhost"
    smtp_port: int = 587
    smtp_username: Optional[str] = None
    smtp_password: Optional[str] = None
    smtp_use_tls: bool = True

    # SMS channel: 'log' writes to the log only, 'http' posts to sms_gateway_url
    sms_provider: str = "log"
    sms_gateway_url: Optional[str] = None
    sms_gateway_token: Optional[str] = None

    http_timeout_seconds: float = 5.0

    # Parallel channel attempts within one check; 1 keeps dispatch sequential
    dispatch_workers: int = 1

    # Periodic sweep over active budgets; 0 disables the scheduler
    threshold_check_interval_minutes: int = 0

    def init_post_load(self) -> None:
        """Finalize derived fields and ensure directories exist."""
        if self.db_path is None:
            self.db_path = self.data_dir / self.db_filename
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        if self.email_provider not in EMAIL_PROVIDERS:
            raise ValueError(
                f"Unsupported email_provider '{self.email_provider}'. Allowed: {EMAIL_PROVIDERS}"
            )
        if self.sms_provider not in SMS_PROVIDERS:
            raise ValueError(
                f"Unsupported sms_provider '{self.sms_provider}'. Allowed: {SMS_PROVIDERS}"
            )
        if self.sms_provider == "http" and not self.sms_gateway_url:
            raise ValueError("sms_gateway_url is required when sms_provider is 'http'")


@lru_cache
def get_settings() -> Settings:
    settings = Settings()
    settings.init_post_load()
    return settings
