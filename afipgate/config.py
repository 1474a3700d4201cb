from __future__ import annotations

import os
from pathlib import Path
from typing import Literal, Optional

import yaml
from pydantic import BaseModel, Field, field_validator

from .constants import DEFAULT_TIMEOUT, WSAA_URL, WSAA_URL_TEST
from .models import Environment


class FilesystemStoreConfig(BaseModel):
    """Configuration for the local filesystem ticket store."""

    directory: Optional[Path] = None


class S3StoreConfig(BaseModel):
    """Configuration for the S3 ticket store."""

    bucket: str = ""
    prefix: str = ""
    region: Optional[str] = None
    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = None
    endpoint_url: Optional[str] = None


class StoreConfig(BaseModel):
    """Ticket store selection."""

    backend: Literal["filesystem", "s3", "inmemory"] = "filesystem"
    filesystem: FilesystemStoreConfig = FilesystemStoreConfig()
    s3: S3StoreConfig = S3StoreConfig()


class AfipConfig(BaseModel):
    """Top-level configuration model."""

    principal: str = Field(..., description="CUIT of the calling party")
    production: bool = False
    res_folder: Path = Path("afip_res")
    cert: str = "cert"
    key: str = "key"
    key_passphrase: Optional[str] = None
    timeout: float = DEFAULT_TIMEOUT
    login_url: Optional[str] = None
    store: StoreConfig = StoreConfig()

    @field_validator("principal", mode="before")
    @classmethod
    def _principal_as_text(cls, value):
        # CUITs are often written as bare numbers in YAML.
        return str(value) if isinstance(value, int) else value

    @property
    def environment(self) -> Environment:
        return Environment.PRODUCTION if self.production else Environment.TEST

    @property
    def cert_path(self) -> Path:
        return (self.res_folder / self.cert).resolve()

    @property
    def key_path(self) -> Path:
        return (self.res_folder / self.key).resolve()

    @property
    def wsaa_url(self) -> str:
        if self.login_url:
            return self.login_url
        return WSAA_URL if self.production else WSAA_URL_TEST


def _env_flag(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on"}


def load_config(path: Optional[str] = None) -> AfipConfig:
    """Load configuration from YAML file.

    Args:
        path: Optional path to config file. Falls back to AFIPGATE_CONFIG env
            variable or 'afipgate.yaml' in the current directory.

    Environment variables AFIPGATE_CUIT, AFIPGATE_PRODUCTION and
    AFIPGATE_STORE_BACKEND override values read from the file.
    """

    config_path = path or os.getenv("AFIPGATE_CONFIG", "afipgate.yaml")
    data: dict = {}
    if os.path.exists(config_path):
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}

    env_cuit = os.getenv("AFIPGATE_CUIT")
    if env_cuit:
        data["principal"] = env_cuit
    env_production = os.getenv("AFIPGATE_PRODUCTION")
    if env_production:
        data["production"] = _env_flag(env_production)
    env_backend = os.getenv("AFIPGATE_STORE_BACKEND")
    if env_backend:
        data.setdefault("store", {})["backend"] = env_backend.lower()

    return AfipConfig(**data)
