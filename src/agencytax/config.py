from datetime import date
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(Path(__file__).parent.parent.parent / ".env"),
        case_sensitive=False,
    )

    # Application
    app_env: str = "development"
    debug: bool = False
    log_level: str = "INFO"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # Database
    database_url: str
    db_echo: bool = False

    # JWT
    jwt_secret: str
    jwt_algorithm: str = "HS256"
    jwt_access_expire_minutes: int = 30

    # Credential vault (Fernet key, urlsafe base64 of 32 bytes)
    encryption_key: str

    # Plaid
    plaid_client_id: str = ""
    plaid_secret: str = ""
    plaid_env: str = "sandbox"
    plaid_timeout_seconds: float = 60.0
    plaid_client_name: str = "AgencyTax"

    # Classifier
    openai_api_key: str | None = None
    classifier_model: str = "gpt-4o-mini"
    classifier_temperature: float = 0.1
    classifier_max_tokens: int = 50

    # Sync
    sync_start_date: date = date(2025, 1, 1)
    sync_page_size: int = 500
    sync_max_retries: int = 4
    sync_retry_base_seconds: float = 1.2

    # Categorization
    categorize_batch_size: int = 200
    categorize_delay_seconds: float = 0.2


settings = Settings()
