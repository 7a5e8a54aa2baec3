from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, List, Optional

import httpx

from ..assets.bower_vendor import AssetBundle

logger = logging.getLogger(__name__)


class VendorDownloader:
    """Download the files of an asset bundle from a CDN into a local folder."""

    def __init__(
        self,
        base_url: str,
        target_dir: Path,
        timeout: float = 20.0,
        retries: int = 2,
        client_factory: Optional[Callable[[], httpx.Client]] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.target_dir = target_dir
        self.timeout = timeout
        self.retries = retries
        self.client_factory = client_factory or self._default_client
        target_dir.mkdir(parents=True, exist_ok=True)

    def download(self, relative_path: str, overwrite: bool = False) -> Path:
        target_path = self._resolve_target_path(relative_path)
        if target_path.exists() and not overwrite:
            logger.debug("Keeping existing vendor file %s", target_path)
            return target_path

        url = f"{self.base_url}/{relative_path.lstrip('/')}"
        last_error: Optional[Exception] = None
        for attempt in range(self.retries + 1):
            try:
                with self.client_factory() as client:
                    logger.debug("Downloading %s (attempt %s)", url, attempt + 1)
                    response = client.get(url)
                    response.raise_for_status()
                target_path.parent.mkdir(parents=True, exist_ok=True)
                target_path.write_bytes(response.content)
                logger.info("Stored vendor file %s", target_path)
                return target_path
            except httpx.HTTPError as exc:
                logger.warning("Failed to download %s: %s", url, exc)
                last_error = exc
        raise RuntimeError(f"Unable to download vendor file {url}") from last_error

    def download_bundle(self, bundle: AssetBundle, overwrite: bool = False) -> List[Path]:
        return [self.download(path, overwrite=overwrite) for path in bundle.files()]

    def _default_client(self) -> httpx.Client:
        return httpx.Client(timeout=self.timeout, follow_redirects=True)

    def _resolve_target_path(self, relative_path: str) -> Path:
        target = (self.target_dir / relative_path.lstrip("/")).resolve()
        if not target.is_relative_to(self.target_dir.resolve()):
            raise ValueError(f"Vendor path escapes the target folder: {relative_path}")
        return target
