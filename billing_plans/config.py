from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # App
    app_name: str = "Billing Plans API"
    debug: bool = False

    # Database
    database_url: str = "sqlite:///./data/app.db"

    # Paddle
    paddle_checkout_url: str = "https://checkout.paddle.com"
    paddle_sandbox_checkout_url: str = "https://sandbox-checkout.paddle.com"
    paddle_sandbox: bool = False
    paddle_timeout_seconds: float = 10.0

    # Logging
    log_level: str = "INFO"
    json_logs: bool = True

    @property
    def prices_base_url(self) -> str:
        if self.paddle_sandbox:
            return self.paddle_sandbox_checkout_url
        return self.paddle_checkout_url


@lru_cache
def get_settings() -> Settings:
    return Settings()
