import warnings
from typing import Annotated, Any, Literal

from pydantic import (
    AnyUrl,
    BeforeValidator,
    Field,
    computed_field,
    field_validator,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing_extensions import Self

DEFAULT_ALLOWED_EMAIL_DOMAINS = [
    # Google
    "gmail.com",
    "googlemail.com",
    # Microsoft
    "hotmail.com",
    "outlook.com",
    "live.com",
    "msn.com",
    # Yahoo
    "yahoo.com",
    "yahoo.es",
    "yahoo.com.mx",
    "yahoo.com.ar",
    # Apple
    "icloud.com",
    "me.com",
    "mac.com",
    "aol.com",
    # Proton
    "protonmail.com",
    "proton.me",
    "pm.me",
    # Latin American providers
    "hotmail.es",
    "outlook.es",
    "terra.com",
    "terra.cl",
    "terra.com.mx",
    "uol.com.br",
    "zoho.com",
    "mail.com",
    "gmx.com",
    "fastmail.com",
]

DEFAULT_BLOCKED_EMAIL_DOMAINS = [
    "10minutemail.com",
    "guerrillamail.com",
    "mailinator.com",
    "tempmail.com",
    "throwaway.email",
    "temp-mail.org",
    "yopmail.com",
    "maildrop.cc",
    "trashmail.com",
    "dispostable.com",
    "fakeinbox.com",
    "getnada.com",
    "mintemail.com",
    "mytrashmail.com",
    "sharklasers.com",
    "spam4.me",
    "tempinbox.com",
    "tempr.email",
    "throwam.com",
]


def parse_list(v: Any) -> list[str] | str:
    if isinstance(v, str) and not v.startswith("["):
        return [i.strip().lower() for i in v.split(",") if i.strip()]
    elif isinstance(v, list | str):
        return v
    raise ValueError(v)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",
    )
    PROJECT_NAME: str = "Finance Tracker"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: Literal["local", "staging", "production"] = "local"

    # No default: must come from the environment
    SECRET_KEY: str
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 15
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7
    # Window after a rotation during which the superseded token is still
    # answered with its successor (lost-response retries)
    REFRESH_TOKEN_REUSE_GRACE_SECONDS: int = Field(default=30, ge=0)
    PASSWORD_HASH_ROUNDS: int = Field(default=12, ge=10, le=31)

    FRONTEND_HOST: str = "http://localhost:5173"
    BACKEND_CORS_ORIGINS: Annotated[
        list[AnyUrl] | str, BeforeValidator(parse_list)
    ] = []

    SQLALCHEMY_DATABASE_URI: str = "sqlite:///./finance_tracker.db"

    # Email verification
    VERIFICATION_CODE_EXPIRE_MINUTES: int = 5
    EMAIL_SERVICE: Literal["mock", "smtp"] = "mock"
    SMTP_TLS: bool = True
    SMTP_PORT: int = 587
    SMTP_HOST: str | None = None
    SMTP_USER: str | None = None
    SMTP_PASSWORD: str | None = None
    EMAILS_FROM_EMAIL: str | None = None
    EMAILS_FROM_NAME: str | None = None
    EMAIL_ALLOWED_DOMAINS: Annotated[
        list[str] | str, BeforeValidator(parse_list)
    ] = DEFAULT_ALLOWED_EMAIL_DOMAINS
    EMAIL_BLOCKED_DOMAINS: Annotated[
        list[str] | str, BeforeValidator(parse_list)
    ] = DEFAULT_BLOCKED_EMAIL_DOMAINS

    # Recurring transactions
    RECURRING_CRON_ENABLED: bool = True
    RECURRING_CRON: str | None = None
    # Expired refresh tokens and verification codes sweep
    CLEANUP_CRON: str = "0 3 * * *"

    LOG_LEVEL: str = "INFO"
    AUDIT_LOG_FILE: str | None = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def all_cors_origins(self) -> list[str]:
        return [str(origin).rstrip("/") for origin in self.BACKEND_CORS_ORIGINS] + [
            self.FRONTEND_HOST
        ]

    @computed_field  # type: ignore[prop-decorator]
    @property
    def recurring_cron_expression(self) -> str:
        """Every 12 hours in production, every 5 minutes elsewhere."""
        if self.RECURRING_CRON:
            return self.RECURRING_CRON
        if self.ENVIRONMENT == "production":
            return "0 */12 * * *"
        return "*/5 * * * *"

    @computed_field  # type: ignore[prop-decorator]
    @property
    def emails_enabled(self) -> bool:
        return bool(self.SMTP_HOST and self.EMAILS_FROM_EMAIL)

    @field_validator("EMAIL_SERVICE", mode="before")
    @classmethod
    def _lower_email_service(cls, v: Any) -> Any:
        return v.lower() if isinstance(v, str) else v

    def _check_default_secret(self, var_name: str, value: str | None) -> None:
        if value == "changethis":
            message = (
                f'The value of {var_name} is "changethis", '
                "for security, please change it, at least for deployments."
            )
            if self.ENVIRONMENT == "local":
                warnings.warn(message, stacklevel=1)
            else:
                raise ValueError(message)

    @model_validator(mode="after")
    def _enforce_non_default_secrets(self) -> Self:
        self._check_default_secret("SECRET_KEY", self.SECRET_KEY)
        self._check_default_secret("SMTP_PASSWORD", self.SMTP_PASSWORD)
        return self

    @model_validator(mode="after")
    def _check_smtp_config(self) -> Self:
        if self.EMAIL_SERVICE == "smtp" and not self.emails_enabled:
            raise ValueError(
                "EMAIL_SERVICE=smtp requires SMTP_HOST and EMAILS_FROM_EMAIL"
            )
        return self


settings = Settings()  # type: ignore
