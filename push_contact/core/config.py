from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = Field(default="Push Contact API", alias="APP_NAME")
    app_env: str = Field(default="local", alias="APP_ENV")
    debug: bool = Field(default=True, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    database_url: str | None = Field(default=None, alias="DATABASE_URL")
    db_host: str = Field(default="localhost", alias="DB_HOST")
    db_port: int = Field(default=3306, alias="DB_PORT")
    db_user: str = Field(default="push_user", alias="DB_USER")
    db_password: str = Field(default="push_pass", alias="DB_PASSWORD")
    db_name: str = Field(default="push_contact_db", alias="DB_NAME")
    db_pool_size: int = Field(default=5, alias="DB_POOL_SIZE")
    db_max_overflow: int = Field(default=5, alias="DB_MAX_OVERFLOW")
    encryption_key: str = Field(
        default="0123456789abcdeffedcba98765432100123456789abcdeffedcba9876543210",
        alias="ENCRYPTION_KEY",
    )

    push_api_url: str | None = Field(default=None, alias="PUSH_API_URL")
    push_api_token: str | None = Field(default=None, alias="PUSH_API_TOKEN")
    push_timeout: float = Field(default=10.0, alias="PUSH_TIMEOUT")
    push_mock_mode: bool = Field(default=True, alias="PUSH_MOCK_MODE")
    push_max_workers: int = Field(default=8, ge=1, alias="PUSH_MAX_WORKERS")
    push_max_retry_attempts: int = Field(default=3, ge=1, alias="PUSH_MAX_RETRY_ATTEMPTS")
    push_retry_base_delay: float = Field(default=0.4, ge=0, alias="PUSH_RETRY_BASE_DELAY")
    deferred_max_workers: int = Field(default=4, ge=1, alias="DEFERRED_MAX_WORKERS")

    jwt_secret_key: str = Field(default="push-contact-secret", alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    superuser_claim: str = Field(default="isSU", alias="SUPERUSER_CLAIM")

    model_config = SettingsConfigDict(
        env_file=(".env", ),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def encryption_key_bytes(self) -> bytes:
        return bytes.fromhex(self.encryption_key)

    @property
    def sqlalchemy_url(self) -> str:
        if self.database_url:
            return self.database_url
        return (
            f"mysql+pymysql://{self.db_user}:{self.db_password}"
            f"@{self.db_host}:{self.db_port}/{self.db_name}"
            f"?charset=utf8mb4"
        )


settings = Settings()
