from functools import lru_cache
from typing import Optional

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "FuelOS"
    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"

    database_url: str = "sqlite:///./fuelos.db"

    # Tenant-scoped and company-staff tokens are signed with different keys
    jwt_secret: str = "change-me-tenant-secret"
    admin_jwt_secret: str = "change-me-admin-secret"
    algorithm: str = "HS256"
    tenant_token_expire_days: int = 7
    staff_token_expire_hours: int = 12
    two_fa_token_expire_minutes: int = 5

    otp_expire_minutes: int = 10
    totp_issuer: str = "FuelOS"
    backup_code_count: int = 10
    bcrypt_rounds: int = 12

    superadmin_email: str = "superadmin@fuelos.in"
    superadmin_password: str = "changeme"
    superadmin_name: str = "Super Admin"

    smtp_host: Optional[str] = None
    smtp_port: int = 587
    smtp_user: Optional[str] = None
    smtp_password: Optional[str] = None
    mail_from: Optional[str] = None

    expose_dev_otp: Optional[bool] = None
    seed_demo_data: bool = False

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @model_validator(mode="after")
    def _apply_defaults(self):
        if not 12 <= self.staff_token_expire_hours <= 24:
            raise ValueError("staff_token_expire_hours must be between 12 and 24")
        if self.expose_dev_otp is None:
            self.expose_dev_otp = not self.is_production
        return self

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def smtp_enabled(self) -> bool:
        return bool(self.smtp_host and self.smtp_user and self.smtp_password)


@lru_cache()
def get_settings() -> Settings:
    return Settings()
