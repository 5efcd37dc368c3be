from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, List


class Settings(BaseSettings):
    # Supabase
    supabase_url: str = ""
    supabase_key: str = ""
    supabase_service_role_key: Optional[str] = None  # Used by background refreshes that run outside a request
    supabase_images_bucket: str = "Images"

    # Group data cache / refresh
    group_data_cache_dir: str = ".cache/group_data"
    group_data_cache_ttl_sec: float = 300  # 5 minutes
    group_data_refresh_interval_sec: float = 300  # 5 minutes

    # Gallery uploads
    max_image_upload_bytes: int = 5 * 1024 * 1024  # 5MB

    # App
    app_name: str = "roomies-backend"
    debug: bool = False
    environment: str = "development"  # development | staging | production
    log_level: str = "INFO"
    cors_origins: str = "http://localhost:3000,http://localhost:5173,http://127.0.0.1:3000,http://127.0.0.1:5173"
    rate_limit: str = "100/minute"  # slowapi format, e.g. "100/minute"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def get_cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        env_prefix="",  # No prefix needed
        extra="ignore"
    )


settings = Settings()
