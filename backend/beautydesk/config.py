from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # App
    environment: str = "development"
    debug: bool = True
    allowed_origins: str = "http://localhost:3000"

    # Platform API (the booking backend this console drives)
    platform_api_url: str = "http://localhost:8000"
    request_timeout_seconds: float = 15.0

    # Durable client storage
    storage_backend: str = "memory"  # "memory" | "redis"
    redis_url: str = "redis://localhost:6379/0"

    # Interaction timings
    undo_window_seconds: float = 5.0
    search_debounce_seconds: float = 0.5

    # Lists
    customer_page_size: int = 20
    lookup_page_size: int = 50

    # Regional
    default_country_code: str = "62"

    # Onboarding gate
    public_paths: str = "/,/signin,/signup"
    gate_paths: str = "/dashboard"

    # Branding
    max_logo_bytes: int = 2 * 1024 * 1024

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "env_prefix": "BEAUTYDESK_"}

    @property
    def public_path_list(self) -> list[str]:
        return [p.strip() for p in self.public_paths.split(",") if p.strip()]

    @property
    def gate_path_list(self) -> list[str]:
        return [p.strip() for p in self.gate_paths.split(",") if p.strip()]


settings = Settings()
