from pydantic import Field, AliasChoices
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    APP_NAME: str = "veo-studio-backend"
    APP_ENV: str = "dev"
    LOG_LEVEL: str = "INFO"

    # Credencial do servidor: nunca sai do processo
    API_KEY: str | None = Field(default=None, validation_alias=AliasChoices("api_key", "API_KEY", "GEMINI_API_KEY"))

    # Veo / Generative Language API
    VEO_MODEL: str = "veo-2.0-generate-001"
    GENAI_BASE_URL: str = "https://generativelanguage.googleapis.com/v1beta"
    REQUEST_TIMEOUT_S: float = 60.0
    DOWNLOAD_TIMEOUT_S: float = 300.0
    DOWNLOAD_ALLOWED_HOSTS: list[str] = ["generativelanguage.googleapis.com"]

    # Cliente (lado do chamador)
    API_BASE_URL: str = "http://localhost:8000"
    POLL_INTERVAL_S: float = 10.0
    POLL_MAX_ATTEMPTS: int = 60

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore")

settings = Settings()
