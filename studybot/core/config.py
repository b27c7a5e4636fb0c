from typing import Optional
from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import PostgresDsn


class PostgresSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )
    host: str = Field(default="localhost", alias="POSTGRES_HOST")
    port: int = Field(default=5432, alias="POSTGRES_DB_PORT")
    db_name: str = Field(default="studybot", alias="POSTGRES_DB_NAME")
    user: str = Field(default="postgres", alias="POSTGRES_DB_USER")
    password: str = Field(default="postgres", alias="POSTGRES_DB_PASSWORD")

    @computed_field
    def connection_string(self) -> PostgresDsn:
        return PostgresDsn(
            f"postgresql+asyncpg://{self.user}:{self.password}@{self.host}:{self.port}/{self.db_name}"
        )


class JWTSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )
    issuer: str = Field(default="https://auth.example.com", alias="JWT_ISSUER")
    application_id: str = Field(default="study-bot", alias="JWT_APPLICATION_ID")
    token_lifetime_seconds: int = Field(
        default=3600, alias="JWT_TOKEN_LIFETIME_SECONDS"
    )
    key_file: str = Field(default="jwt_rsa_key.pem", alias="JWT_KEY_FILE")


class GenerationSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )
    model_name: str = Field(default="gemini-2.0-flash", alias="GENERATION_MODEL")
    timeout_seconds: float = Field(default=30.0, alias="GENERATION_TIMEOUT_SECONDS")
    max_retries: int = Field(default=2, alias="GENERATION_MAX_RETRIES")
    backoff_seconds: float = Field(default=0.5, alias="GENERATION_BACKOFF_SECONDS")
    pending_ttl_minutes: int = Field(default=15, alias="PENDING_TTL_MINUTES")


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )
    name: str = Field(default="study-bot", alias="APP_NAME")
    version: str = Field(default="v1", alias="API_VERSION")
    port: int = Field(default=9000, alias="APP_PORT")
    mode: str = Field(default="prod", alias="MODE")
    jwt_secret: str = Field(alias="JWT_SECRET")

    @computed_field
    def is_production(self) -> bool:
        return self.mode != "dev"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

    app: AppSettings = Field(default_factory=lambda: AppSettings())
    postgres: PostgresSettings = Field(default_factory=lambda: PostgresSettings())
    jwt: JWTSettings = Field(default_factory=lambda: JWTSettings())
    generation: GenerationSettings = Field(
        default_factory=lambda: GenerationSettings()
    )

    # Overrides the Postgres DSN (e.g. sqlite+aiosqlite:///./studybot.db)
    database_url: Optional[str] = Field(default=None, alias="DATABASE_URL")

    gemini_api_key: Optional[str] = Field(default=None, alias="GEMINI_API_KEY")
    openrouter_api_key: Optional[str] = Field(default=None, alias="OPENROUTER_API_KEY")

    # Model provider selection: "google" or "openrouter"
    model_provider: str = Field(default="google", alias="MODEL_PROVIDER")
    openrouter_model: str = Field(
        default="google/gemini-2.0-flash-001", alias="OPENROUTER_MODEL"
    )

    @computed_field
    def resolved_database_url(self) -> str:
        return self.database_url or str(self.postgres.connection_string)


settings = Settings()
