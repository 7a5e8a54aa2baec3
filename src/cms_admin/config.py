from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

logger = logging.getLogger(__name__)

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off"})


@dataclass(slots=True)
class StorageConfig:
    """Settings shared by the storage service, image items and asset bundles."""

    server_path: Path = Path("storage")
    base_url: str = "/storage"
    absolute_base_url: str = "http://localhost"
    auto_fix_missing_image_sources: bool = True
    environment: str = "prod"
    admin_language: str = "en"

    def __post_init__(self) -> None:
        self.server_path = Path(self.server_path)
        self.base_url = "/" + self.base_url.strip("/") if self.base_url.strip("/") else ""
        self.absolute_base_url = self.absolute_base_url.rstrip("/")

    @property
    def is_production(self) -> bool:
        return self.environment == "prod"

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        env_path: Path = Path(".env"),
    ) -> "StorageConfig":
        """Build a config from ``CMS_*`` environment variables, then *env_path*."""

        values = _read_env_file(env_path)
        values.update(
            (key, value) for key, value in (environ if environ is not None else os.environ).items()
            if key.startswith("CMS_")
        )

        config = cls()
        if values.get("CMS_STORAGE_PATH"):
            config.server_path = Path(values["CMS_STORAGE_PATH"])
        if values.get("CMS_STORAGE_BASE_URL") is not None:
            config.base_url = values["CMS_STORAGE_BASE_URL"]
        if values.get("CMS_STORAGE_ABSOLUTE_URL"):
            config.absolute_base_url = values["CMS_STORAGE_ABSOLUTE_URL"]
        if values.get("CMS_AUTO_FIX_IMAGES"):
            config.auto_fix_missing_image_sources = _parse_bool(values["CMS_AUTO_FIX_IMAGES"])
        if values.get("CMS_ENV"):
            config.environment = values["CMS_ENV"].strip().lower()
        if values.get("CMS_LANGUAGE"):
            config.admin_language = values["CMS_LANGUAGE"].strip()
        config.__post_init__()
        return config


def _parse_bool(value: str) -> bool:
    normalized = value.strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    raise ValueError(f"Invalid boolean value: {value!r}")


def _read_env_file(env_path: Path) -> dict[str, str]:
    values: dict[str, str] = {}
    if not env_path.exists():
        return values

    try:
        for line in env_path.read_text(encoding="utf-8").splitlines():
            stripped = line.strip()
            if not stripped or stripped.startswith("#"):
                continue
            if "=" not in stripped:
                continue
            key, raw_value = stripped.split("=", 1)
            key = key.strip()
            if key.startswith("CMS_"):
                values[key] = raw_value.strip().strip('"').strip("'")
    except OSError:
        logger.debug("Unable to read %s for storage settings", env_path, exc_info=True)
    return values
