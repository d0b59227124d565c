from functools import lru_cache

from pydantic_settings import BaseSettings

DEFAULT_ALLOWED_ORIGINS = ",".join(
    [
        "https://amazon.com",
        "https://www.amazon.com",
        "https://www.amazon.ca",
        "https://www.amazon.co.uk",
        "https://www.amazon.de",
        "https://www.amazon.fr",
        "https://www.amazon.it",
        "https://www.amazon.es",
        "https://www.amazon.com.au",
    ]
)


class Settings(BaseSettings):
    """Configuration sourced from environment variables."""

    version: str = "1.0.0"
    title: str = "Review Trust Service"

    openai_api_key: str | None = None
    openai_model: str = "gpt-4o-mini"
    openai_base_url: str = "https://api.openai.com/v1"
    classifier_timeout: float = 30.0
    classifier_temperature: float = 0.2
    max_reviews: int = 100

    allowed_origins: str = DEFAULT_ALLOWED_ORIGINS
    log_level: str = "INFO"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 8080

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "",
        "case_sensitive": False,
    }

    def get_allowed_origins(self) -> list[str]:
        """Parse CORS origins from the comma-separated setting."""
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]


@lru_cache(1)
def get_settings() -> Settings:
    return Settings()
