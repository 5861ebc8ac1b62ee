from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    database_url: str = "postgresql+psycopg://postgres@localhost:5432/fitting_portal"
    db_auto_create_tables: bool = False
    seed_default_size_charts: bool = True
    log_level: str = "INFO"

    # 설정 시 모든 API 호출에 X-API-Secret 헤더(또는 apiSecret 쿼리)가 필요
    api_secret: str = ""

    # 업로드/저장소
    upload_dir: str = "./uploads"
    max_file_size: int = 10 * 1024 * 1024  # 10MB
    storage_backend: str = "local"  # local, supabase
    supabase_url: str = ""
    supabase_service_role_key: str = ""
    supabase_bucket: str = "photos"

    # 업로드 rate limit (IP 기준)
    upload_rate_limit: int = 5
    upload_rate_window_seconds: float = 60.0
    rate_limit_sweep_seconds: float = 300.0

    # 자동화(n8n 등) 웹훅
    webhook_url: str = ""
    webhook_secret: str = ""
    webhook_max_retries: int = 3
    webhook_retry_base_delay: float = 1.0  # 재시도마다 2배
    webhook_timeout: float = 10.0

    # Shopify
    shopify_shop_domain: str = ""
    shopify_access_token: str = ""
    shopify_api_version: str = "2024-01"
    shopify_retry_count: int = 3

    # 관리자 인증
    admin_password: str = "admin123"
    jwt_secret: str = "fitting-portal-jwt-secret-change-in-production"
    jwt_algorithm: str = "HS256"
    admin_token_ttl_hours: int = 24

    def shopify_configured(self) -> bool:
        return bool(self.shopify_shop_domain and self.shopify_access_token)

    @field_validator("database_url")
    @classmethod
    def validate_db_url(cls, v: str) -> str:
        if not v.startswith(("postgresql", "sqlite")):
            raise ValueError("DB URL must start with 'postgresql' or 'sqlite'.")
        return v

    @field_validator("webhook_url", "supabase_url")
    @classmethod
    def validate_http_url(cls, v: str) -> str:
        if v and not v.startswith(("http://", "https://")):
            raise ValueError("URL must start with 'http://' or 'https://'.")
        return v

    @field_validator("storage_backend")
    @classmethod
    def validate_storage_backend(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in ("local", "supabase"):
            raise ValueError("storage_backend must be 'local' or 'supabase'.")
        return v

    @field_validator(
        "webhook_retry_base_delay",
        "webhook_timeout",
        "upload_rate_window_seconds",
        "rate_limit_sweep_seconds",
    )
    @classmethod
    def validate_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("Delay/interval values must be >= 0.")
        return v

    @field_validator("webhook_max_retries")
    @classmethod
    def validate_max_retries(cls, v: int) -> int:
        if not 1 <= v <= 10:
            raise ValueError("webhook_max_retries must be between 1 and 10.")
        return v

    @field_validator("max_file_size", "upload_rate_limit", "shopify_retry_count", "admin_token_ttl_hours")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("Value must be greater than 0.")
        return v

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", case_sensitive=False)


settings = Settings()
