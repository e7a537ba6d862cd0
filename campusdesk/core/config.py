from functools import lru_cache
from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration read from environment variables."""

    app_name: str = Field(default="Campus Desk API")
    environment: str = Field(default="development")
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="%(asctime)s %(levelname)s %(name)s %(message)s")

    # Storage configuration
    storage_dsn: str = Field(default="sqlite:///./campusdesk.db")
    tickets_storage_key: str = Field(default="ISU_CARE_SYS_TICKETS")
    replies_storage_key: str = Field(default="ISU_TICKET_REPLIES")
    system_logs_storage_key: str = Field(default="ISU_CARE_SYS_SYSTEM_LOGS")

    # Identity configuration
    student_role_id: str = Field(default="role_student")

    # Audit analyzer thresholds
    brute_force_threshold: int = Field(default=3)
    mass_export_threshold: int = Field(default=2)
    mass_export_window_seconds: int = Field(default=3600)
    trend_days: int = Field(default=7)

    notification_buffer_size: int = Field(default=50)

    # Observability configuration
    otel_enabled: bool = Field(default=False)
    otel_service_name: str = Field(default="campusdesk-api")
    otel_exporter_otlp_endpoint: str | None = Field(default=None)
    otel_exporter_otlp_headers: str | None = Field(default=None)

    class Config:
        env_file = ".env"
        env_prefix = "CAMPUSDESK_"
        case_sensitive = False


@lru_cache
def get_settings() -> Settings:
    """Return a cached instance of the application settings."""

    return Settings()
