from pydantic_settings import BaseSettings
from dotenv import load_dotenv


load_dotenv()


class Settings(BaseSettings):
    app_name: str = "Style Compliance API"
    debug: bool = False
    database_url: str = "sqlite:///./compliance.db"
    host: str = "127.0.0.1"
    port: int = 8000
    allowed_hosts: str = ""

    log_file: str = "logs/application.log"
    log_level: str = "INFO"

    # Compliance rules
    default_test_expiry_months: int = 6
    sla_at_risk_days: int = 2
    default_test_turnaround_days: int = 7

    # Daily expiry reconciliation
    reconcile_enabled: bool = True
    reconcile_hour_utc: int = 2


settings = Settings()

if settings.default_test_expiry_months < 1:
    raise RuntimeError("default_test_expiry_months must be at least 1.")
