"""Process configuration resolved once from the environment."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Mapping, Optional

from core.env import env_bool, env_float, env_int, env_json_object, env_list, env_str

WEBPAY_INTEGRATION_URL = "https://webpay3gint.transbank.cl"
WEBPAY_PRODUCTION_URL = "https://webpay3g.transbank.cl"
# Public Transbank integration credentials for Webpay Plus.
WEBPAY_INTEGRATION_COMMERCE_CODE = "597055555532"
WEBPAY_INTEGRATION_API_KEY = "579B532A7440BB0C9079DED94D31EA1615BACEB56610332264630D42D0A601B1C"

DEFAULT_PENDING_STORE_PATH = Path("uploads") / "payments" / "pending_transactions.json"
MAX_PURGE_BATCH_SIZE = 500


@dataclass(frozen=True)
class Settings:
    app_name: str = "Repleno API"
    public_base_url: str = "http://localhost:3000"
    receipt_page_url: str = "/retorno.html"
    cors_origins: List[str] = field(default_factory=lambda: ["*"])

    webpay_environment: str = "integration"
    webpay_commerce_code: str = WEBPAY_INTEGRATION_COMMERCE_CODE
    webpay_api_key: str = WEBPAY_INTEGRATION_API_KEY
    webpay_base_url: str = WEBPAY_INTEGRATION_URL
    webpay_timeout_seconds: float = 15.0

    pending_store_backend: str = "file"
    pending_store_path: Path = DEFAULT_PENDING_STORE_PATH
    pending_ttl_hours: int = 24

    purge_batch_size: int = MAX_PURGE_BATCH_SIZE
    deletion_sweep_enabled: bool = True
    deletion_sweep_interval_seconds: float = 3600.0

    gemini_api_key: Optional[str] = None
    advisor_model: str = "gemini/gemini-2.0-flash"
    advisor_max_retries: int = 3
    advisor_backoff_seconds: float = 1.0
    advisor_timeout_seconds: float = 60.0

    firebase_credentials_file: Path = Path("serviceAccountKey.json")
    firebase_service_account: Optional[Mapping[str, Any]] = None

    @property
    def return_url(self) -> str:
        return f"{self.public_base_url.rstrip('/')}/retorno"

    @classmethod
    def from_env(cls) -> "Settings":
        environment = (env_str("WEBPAY_ENVIRONMENT", "integration") or "integration").lower()
        default_base = WEBPAY_PRODUCTION_URL if environment == "production" else WEBPAY_INTEGRATION_URL
        return cls(
            app_name=env_str("APP_NAME", cls.app_name) or cls.app_name,
            public_base_url=env_str("PUBLIC_BASE_URL", cls.public_base_url) or cls.public_base_url,
            receipt_page_url=env_str("RECEIPT_PAGE_URL", cls.receipt_page_url) or cls.receipt_page_url,
            cors_origins=env_list("CORS_ORIGINS", ["*"]),
            webpay_environment=environment,
            webpay_commerce_code=env_str("WEBPAY_COMMERCE_CODE", WEBPAY_INTEGRATION_COMMERCE_CODE)
            or WEBPAY_INTEGRATION_COMMERCE_CODE,
            webpay_api_key=env_str("WEBPAY_API_KEY", WEBPAY_INTEGRATION_API_KEY) or WEBPAY_INTEGRATION_API_KEY,
            webpay_base_url=env_str("WEBPAY_BASE_URL", default_base) or default_base,
            webpay_timeout_seconds=env_float("WEBPAY_TIMEOUT_SECONDS", 15.0, minimum=1.0),
            pending_store_backend=(env_str("PENDING_STORE_BACKEND", "file") or "file").lower(),
            pending_store_path=Path(env_str("PENDING_STORE_PATH", str(DEFAULT_PENDING_STORE_PATH)) or DEFAULT_PENDING_STORE_PATH),
            pending_ttl_hours=env_int("PENDING_TTL_HOURS", 24, minimum=1),
            purge_batch_size=min(env_int("PURGE_BATCH_SIZE", MAX_PURGE_BATCH_SIZE, minimum=1), MAX_PURGE_BATCH_SIZE),
            deletion_sweep_enabled=env_bool("DELETION_SWEEP_ENABLED", True),
            deletion_sweep_interval_seconds=env_float("DELETION_SWEEP_INTERVAL_SECONDS", 3600.0, minimum=1.0),
            gemini_api_key=env_str("GEMINI_API_KEY"),
            advisor_model=env_str("ADVISOR_MODEL", cls.advisor_model) or cls.advisor_model,
            advisor_max_retries=env_int("ADVISOR_MAX_RETRIES", 3, minimum=0),
            advisor_backoff_seconds=env_float("ADVISOR_BACKOFF_SECONDS", 1.0, minimum=0.0),
            advisor_timeout_seconds=env_float("ADVISOR_TIMEOUT_SECONDS", 60.0, minimum=1.0),
            firebase_credentials_file=Path(env_str("FIREBASE_CREDENTIALS_FILE", "serviceAccountKey.json") or "serviceAccountKey.json"),
            firebase_service_account=env_json_object("FIREBASE_SERVICE_ACCOUNT"),
        )


__all__ = ["MAX_PURGE_BATCH_SIZE", "Settings"]
