from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


PACKAGE_DATA_DIR = Path(__file__).resolve().parents[1] / "data"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = Field(default="development", validation_alias="APP_ENV")

    # Mock viewer + packaged mock CSV, polling disabled.
    dev_mode: bool = Field(default=False, validation_alias="DEV_MODE")

    data_source_type: str = Field(default="mock_csv", validation_alias="DATA_SOURCE_TYPE")
    data_source_url: str | None = Field(default=None, validation_alias="DATA_SOURCE_URL")
    google_sheet_url: str | None = Field(default=None, validation_alias="GOOGLE_SHEET_URL")
    mock_csv_path: str = Field(
        default=str(PACKAGE_DATA_DIR / "mock_quest_data.csv"),
        validation_alias="MOCK_CSV_PATH",
    )
    api_timeout_seconds: float = Field(default=30.0, validation_alias="API_TIMEOUT_SECONDS")
    api_auth_header: str | None = Field(default=None, validation_alias="API_AUTH_HEADER")
    polling_interval_seconds: int = Field(default=180, validation_alias="POLLING_INTERVAL_SECONDS")

    quest_config: str = Field(default="default", validation_alias="QUEST_CONFIG")
    ui_themes_dir: str = Field(default=str(PACKAGE_DATA_DIR / "ui_configs"), validation_alias="UI_THEMES_DIR")
    ui_theme: str = Field(default="default", validation_alias="UI_THEME")

    avatar_base_url: str = Field(
        default="https://api.employee.leobit.co/photos-small",
        validation_alias="AVATAR_BASE_URL",
    )
    avatar_file_extension: str = Field(default=".png", validation_alias="AVATAR_FILE_EXTENSION")
    avatar_fallback_url: str = Field(default="/fallback-avatar.png", validation_alias="AVATAR_FALLBACK_URL")

    csv_email_column: str = Field(default="Email Address", validation_alias="CSV_EMAIL_COLUMN")
    csv_name_column: str = Field(default="Ім'я та прізвище", validation_alias="CSV_NAME_COLUMN")
    csv_social_points_column: str = Field(default="Соц мережі відмітки", validation_alias="CSV_SOCIAL_POINTS_COLUMN")
    csv_task_column_pattern: str = Field(default=r"^\d+\.", validation_alias="CSV_TASK_COLUMN_PATTERN")

    redis_url: str = Field(
        default="redis://localhost:6379/0",
        validation_alias="REDIS_URL",
    )

    jwt_secret_key: str = Field(default="change-me", validation_alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field(default="HS256", validation_alias="JWT_ALGORITHM")
    jwt_issuer: str | None = Field(default=None, validation_alias="JWT_ISSUER")
    jwt_audience: str | None = Field(default="leobit.quest.web", validation_alias="JWT_AUDIENCE")
    # Comma separated `sub` claims allowed to operate the data source.
    admin_subs: str = Field(default="", validation_alias="ADMIN_SUBS")

    cors_allow_origins: str = Field(default="http://localhost:5173", validation_alias="CORS_ALLOW_ORIGINS")

    enable_inprocess_polling: bool = Field(default=True, validation_alias="ENABLE_INPROCESS_POLLING")


settings = Settings()


def _is_prod() -> bool:
    return (settings.app_env or "").strip().lower() in {"prod", "production"}


if _is_prod():
    if bool(settings.dev_mode):
        raise RuntimeError("DEV_MODE must be false in production")
    if not settings.jwt_secret_key or settings.jwt_secret_key.strip().lower() in {"change-me", "your-secret", "secret"}:
        raise RuntimeError("JWT_SECRET_KEY must be set to a strong value in production")
    if not (settings.google_sheet_url or settings.data_source_url):
        raise RuntimeError("GOOGLE_SHEET_URL or DATA_SOURCE_URL must be set in production")
    if settings.redis_url.strip() == "redis://localhost:6379/0":
        raise RuntimeError("REDIS_URL must be set in production")
