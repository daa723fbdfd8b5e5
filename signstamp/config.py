"""
Configuration module - loads secrets from Google Secret Manager.
Falls back to environment variables for local development.
"""
import json
import os
import logging
from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, NoDecode
from pydantic import Field, model_validator, field_validator
from typing import Annotated, List, Any

logger = logging.getLogger(__name__)


def get_secret_from_gcp(secret_id: str, project_id: Optional[str] = None) -> Optional[str]:
    """
    Fetch secret from Google Secret Manager.
    Returns None if not available (fallback to env vars).
    """
    try:
        from google.cloud import secretmanager

        client = secretmanager.SecretManagerServiceClient()
        project = project_id or os.environ.get("GCP_PROJECT_ID") or os.environ.get("GOOGLE_CLOUD_PROJECT")

        if not project:
            return None

        name = f"projects/{project}/secrets/{secret_id}/versions/latest"
        response = client.access_secret_version(request={"name": name})
        return response.payload.data.decode("UTF-8")
    except Exception as e:
        logger.debug(f"Could not fetch secret {secret_id} from Secret Manager: {e}")
        return None


class Settings(BaseSettings):
    """Application settings with Secret Manager integration."""

    # GCP
    gcp_project_id: str = Field(default="", alias="GCP_PROJECT_ID")

    # Storage: "local" (directories on disk) or "gcs"
    storage_backend: str = Field(default="local", alias="STORAGE_BACKEND")
    documents_dir: str = Field(default="./pdfs", alias="DOCUMENTS_DIR")
    signed_dir: str = Field(default="./signed", alias="SIGNED_DIR")
    signed_files_base_url: str = Field(default="/signed-files", alias="SIGNED_FILES_BASE_URL")

    # GCS
    gcs_bucket: str = Field(default="", alias="GCS_BUCKET")
    gcs_documents_prefix: str = Field(default="documents", alias="GCS_DOCUMENTS_PREFIX")
    gcs_signed_url_expiration_minutes: int = Field(default=10, alias="GCS_SIGNED_URL_EXPIRATION_MINUTES")

    # Audit store: "supabase" or "memory" (local development only)
    audit_backend: str = Field(default="supabase", alias="AUDIT_BACKEND")
    supabase_url: str = Field(default="", alias="SUPABASE_URL")
    supabase_service_key: str = Field(default="", alias="SUPABASE_SERVICE_KEY")
    audit_table: str = Field(default="signing_audit", alias="AUDIT_TABLE")

    # Request limits
    max_signature_bytes: int = Field(
        default=5 * 1024 * 1024,
        alias="MAX_SIGNATURE_BYTES",
        description="Largest decoded signature image accepted (default 5 MiB)"
    )

    # Environment
    environment: str = Field(default="development", alias="ENVIRONMENT")
    debug: bool = Field(default=False, alias="DEBUG")

    # CORS
    allowed_origins: Annotated[List[str], NoDecode] = Field(default=[], alias="ALLOWED_ORIGINS")

    @field_validator("allowed_origins", mode='before')
    @classmethod
    def _parse_allowed_origins(cls, v: Any) -> List[str]:
        """Parse ALLOWED_ORIGINS from JSON list, CSV, semicolon-separated string, or list."""
        if v is None:
            return []
        if isinstance(v, list):
            return v
        if isinstance(v, str):
            s = v.strip()
            if not s:
                return []
            if s.startswith("["):
                try:
                    return json.loads(s)
                except json.JSONDecodeError:
                    pass  # Fall through to delimiter parsing
            # Semicolon is useful in Cloud Build where comma separates env vars
            parts = [p.strip() for p in s.replace(",", ";").split(";")]
            return [p for p in parts if p]
        return []

    @field_validator("storage_backend", "audit_backend", mode='before')
    @classmethod
    def _normalize_backend(cls, v: Any) -> str:
        return str(v).strip().lower() if v is not None else v

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self._load_secrets_from_gcp()

    def _load_secrets_from_gcp(self):
        """Override settings with values from Secret Manager if available."""
        if not (self.gcp_project_id or os.environ.get("GOOGLE_CLOUD_PROJECT")):
            return

        secret_mappings = {
            "supabase_url": "SUPABASE_URL",
            "supabase_service_key": "SUPABASE_SERVICE_KEY",
            "gcs_bucket": "GCS_BUCKET",
        }

        for attr, secret_id in secret_mappings.items():
            secret_value = get_secret_from_gcp(secret_id, self.gcp_project_id)
            if secret_value:
                setattr(self, attr, secret_value)
                logger.info(f"Loaded {secret_id} from Secret Manager")

    @model_validator(mode='after')
    def validate_backends(self) -> 'Settings':
        """Validate storage and audit backend configuration."""
        if self.storage_backend not in ("local", "gcs"):
            raise ValueError(
                f"STORAGE_BACKEND must be 'local' or 'gcs', got '{self.storage_backend}'"
            )
        if self.audit_backend not in ("supabase", "memory"):
            raise ValueError(
                f"AUDIT_BACKEND must be 'supabase' or 'memory', got '{self.audit_backend}'"
            )

        if self.storage_backend == "gcs" and not self.gcs_bucket:
            logger.error("CRITICAL: STORAGE_BACKEND=gcs but GCS_BUCKET is not set!")

        if self.environment == "production" and self.audit_backend == "memory":
            logger.error(
                "CRITICAL: AUDIT_BACKEND=memory in production! "
                "Audit records will be lost on restart."
            )

        return self


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# =============================================================================
# CORS Configuration
# =============================================================================

# Development origins (only in non-production)
DEV_CORS_ORIGINS = [
    "http://localhost:5173",
    "http://localhost:3000",
    "http://localhost:8080",
    "http://127.0.0.1:5173",
    "http://127.0.0.1:3000",
]


def get_cors_origins(settings: Optional[Settings] = None) -> List[str]:
    """
    Get list of allowed CORS origins.

    Combines:
    1. Origins from ALLOWED_ORIGINS env variable
    2. Development origins (if not in production)
    """
    settings = settings or get_settings()
    origins = set(settings.allowed_origins)

    if settings.environment != "production":
        origins.update(DEV_CORS_ORIGINS)

    return sorted(origins)
