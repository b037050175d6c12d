from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import AliasChoices, Field
from typing import Optional


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore")

    # Core
    app_name: str = Field(default="Construction Manager API")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Server
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=4000)
    port_retry_attempts: int = Field(default=10, alias="PORT_RETRY_ATTEMPTS")

    # Database
    mongo_uri: str = Field(default="mongodb://localhost:27017", alias="MONGO_URI")
    database_name: str = Field(default="construction", alias="DATABASE_NAME")
    mongo_timeout_ms: int = Field(default=5000, alias="MONGO_TIMEOUT_MS")

    # Tokens (JWT_SECRET is only read when TOKEN_SECRET_KEY is unset)
    token_secret_key: str = Field(
        default="change-me",
        validation_alias=AliasChoices("TOKEN_SECRET_KEY", "JWT_SECRET"),
    )
    jwt_algorithm: str = Field(default="HS256")
    token_ttl_days: int = Field(default=7, alias="TOKEN_TTL_DAYS")
    reset_ttl_minutes: int = Field(default=60, alias="RESET_TTL_MINUTES")
    cookie_secure: bool = Field(default=True, alias="COOKIE_SECURE")

    # Mail
    email_user: Optional[str] = Field(default=None, alias="EMAIL_USER")
    email_password: Optional[str] = Field(default=None, alias="EMAIL_PASSWORD")
    smtp_host: str = Field(default="smtp.gmail.com", alias="SMTP_HOST")
    smtp_port: int = Field(default=587, alias="SMTP_PORT")
    smtp_tls: bool = Field(default=True, alias="SMTP_TLS")

    # Public URLs
    frontend_url: str = Field(default="http://localhost:3000", alias="FRONTEND_URL")
    public_base_url: str = Field(default="http://localhost:4000", alias="PUBLIC_BASE_URL")

    # Uploads
    upload_dir: str = Field(default="uploads", alias="UPLOAD_DIR")


settings = Settings()
