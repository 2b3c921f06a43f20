"""Configuration utilities for the LibreLinkUp sync client."""

import json
import logging
import os
from datetime import timezone, tzinfo
from functools import lru_cache
from typing import Dict, Optional
from zoneinfo import ZoneInfo

import boto3
from botocore.exceptions import ClientError
from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from llu_sync.utils.logging_utils import JSONFormatter

logger = logging.getLogger(__name__)

# Secret keys accepted for each credential setting, besides the setting name itself.
SECRET_KEY_ALIASES = {
    "llu_email": ("email", "username"),
    "llu_password": ("password",),
    "llu_region": ("region",),
}


class CredentialSecrets:
    """Reads LibreLinkUp account credentials stored in AWS Secrets Manager."""

    def __init__(self, region_name: Optional[str] = None):
        self.region_name = region_name or os.environ.get("AWS_REGION", "us-east-1")
        self.client = boto3.client(
            "secretsmanager",
            region_name=self.region_name,
            endpoint_url=os.environ.get("AWS_SECRETSMANAGER_ENDPOINT"),
        )

    def fetch(self, secret_name: str) -> Dict[str, str]:
        """
        Fetch the secret and map its keys onto setting names.

        A secret may use the setting names (`LLU_EMAIL`) or the plain
        login field names (`email`, `password`). Unknown keys are dropped.

        Raises:
            ClientError: the secret cannot be read
            ValueError: the secret is binary or not a JSON object
        """
        response = self.client.get_secret_value(SecretId=secret_name)
        if "SecretString" not in response:
            raise ValueError(f"secret {secret_name} is binary; expected a JSON object")
        payload = json.loads(response["SecretString"])
        if not isinstance(payload, dict):
            raise ValueError(f"secret {secret_name} is not a JSON object")

        values: Dict[str, str] = {}
        lowered = {str(k).lower(): v for k, v in payload.items()}
        for setting, aliases in SECRET_KEY_ALIASES.items():
            for key in (setting, *aliases):
                if isinstance(lowered.get(key), str):
                    values[setting] = lowered[key]
                    break
        return values


class Settings(BaseSettings):
    """Client settings loaded from environment variables and secrets."""

    # Service configuration
    service_env: str = Field("development", description="Service environment (development, staging, production)")
    log_level: str = Field("INFO", description="Logging level")
    log_format: str = Field("json", description="Log output format (json or text)")
    secret_name: Optional[str] = Field(None, description="AWS Secrets Manager secret holding LibreLinkUp credentials")
    aws_region: str = Field("us-east-1", description="AWS region used for Secrets Manager")

    # LibreLinkUp account
    llu_email: str = Field("", description="LibreLinkUp follower account email")
    llu_password: SecretStr = Field(SecretStr(""), description="LibreLinkUp follower account password")
    llu_region: str = Field("eu", description="Regional API host selector (eu, de, us, ...)")

    # LibreLinkUp API
    llu_site_url: str = Field("https://api.libreview.io", description="Global LibreLinkUp site used for login")
    llu_regional_site_template: str = Field(
        "https://api-{region}.libreview.io", description="Template of the regional site serving patient data"
    )
    llu_product: str = Field("llu.ios", description="Client product identifier header")
    llu_version: str = Field("4.16.0", description="Client version identifier header")
    llu_user_agent: str = Field("Mozilla/5.0", description="User agent header")

    # Sync configuration
    scrape_logbook: bool = Field(False, description="Fetch the logbook after the graph when a rotated token is returned")
    adopt_newer_family_sensors: bool = Field(
        False, description="Adopt a Libre 3 family sensor from the cloud when no local sensor is tracked"
    )
    timezone: str = Field("", description="IANA timezone of the service timestamps; empty means system local")
    request_timeout_seconds: float = Field(30.0, description="HTTP request timeout in seconds")

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in ("json", "text"):
            raise ValueError("log_format must be 'json' or 'text'")
        return v

    @field_validator("llu_region")
    @classmethod
    def normalize_region(cls, v: str) -> str:
        return v.strip().lower()

    def _load_secrets(self) -> None:
        """Override account credentials from AWS Secrets Manager if configured."""
        if not self.secret_name or self.service_env == "development":
            return

        try:
            secrets = CredentialSecrets(self.aws_region).fetch(self.secret_name)
        except ClientError as e:
            logger.error(f"Could not read LibreLinkUp credentials from {self.secret_name}: {e}")
            raise

        if "llu_email" in secrets:
            self.llu_email = secrets["llu_email"]
        if "llu_password" in secrets:
            self.llu_password = SecretStr(secrets["llu_password"])
        if "llu_region" in secrets:
            self.llu_region = secrets["llu_region"].strip().lower()

    def get_timezone(self) -> Optional[tzinfo]:
        """
        Timezone used to interpret the service's wall-clock timestamps.

        None means system local time, resolved per timestamp so that
        daylight-saving transitions are followed.
        """
        if self.timezone.upper() == "UTC":
            return timezone.utc
        if self.timezone:
            return ZoneInfo(self.timezone)
        return None

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_prefix="",
        extra="ignore",
    )

    def __init__(self, *args, **kwargs):
        """Initialize settings with secrets."""
        super().__init__(*args, **kwargs)
        self._load_secrets()


@lru_cache()
def get_settings() -> Settings:
    """
    Create and cache settings instance.

    Returns:
        Settings: Client settings
    """
    return Settings()


def setup_logging(level: str = "INFO", fmt: str = "json") -> logging.Logger:
    """
    Configure the root logger once for the process.

    Args:
        level: Logging level name
        fmt: 'json' for structured output, 'text' for a plain format
    """
    logger = logging.getLogger()
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    for h in list(logger.handlers):
        logger.removeHandler(h)
    handler = logging.StreamHandler()
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s"))
    logger.addHandler(handler)
    return logger
