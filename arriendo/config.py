from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ---- App ----
    app_env: str = "local"  # local|dev|prod
    app_version: str = "2026-10.v1"
    database_url: str = "sqlite:///./arriendo.db"

    # ---- CORS (used by main.py) ----
    cors_allow_origins: list[str] | str = ["*"]

    # ---- Auth ----
    auth_mode: str = "dev"  # dev|jwt
    dev_header_user_id: str = "X-User-Id"

    jwt_secret: str = "dev-change-me"
    jwt_algorithm: str = "HS256"
    jwt_exp_minutes: int = 60 * 24 * 7  # 7 days

    # ---- Plans / entitlements ----
    pro_plan_suffix: str = "_pro"
    pro_plan_codes: list[str] = ["tenant_pro", "landlord_pro", "inmobiliaria_pro"]

    # ---- KYC ----
    kyc_validity_days: int = 365
    kyc_provider: str = "mock"

    # ---- Contract requests ----
    contract_request_ttl_days: int = 30

    # ---- Contracts ----
    default_contract_template: str = "standard"

    # ---- Celery / notifications ----
    celery_broker_url: str = "redis://localhost:6379/0"
    celery_result_backend: str = "redis://localhost:6379/1"
    email_webhook_url: str | None = None
    email_from: str = "notificaciones@arriendo.local"
    email_timeout_seconds: float = 10.0

    def model_post_init(self, __context) -> None:
        env = (self.app_env or "local").strip().lower()
        is_prod = env in ("prod", "production")

        # No header-spoofed principals outside local/dev
        if is_prod:
            if (self.auth_mode or "").strip().lower() == "dev":
                raise ValueError("SECURITY: auth_mode=dev is not allowed in prod")
            if self.jwt_secret == "dev-change-me":
                raise ValueError("SECURITY: jwt_secret must be set in prod")

            origins = self.cors_allow_origins
            if origins == "*" or origins == ["*"] or (isinstance(origins, str) and "*" in origins):
                raise ValueError("SECURITY: cors_allow_origins wildcard is not allowed in prod")


settings = Settings()
