from __future__ import annotations

import hashlib
import json
import logging
import mimetypes
import os
import re
import shutil
import tempfile
import time
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from PIL import Image, UnidentifiedImageError

from ..config import StorageConfig
from ..exceptions import StorageError
from ..file.item import FileItem
from ..image.item import ImageItem
from ..image_processing.filters import apply_effects, validate_effect
from ..models import FilterDefinition

logger = logging.getLogger(__name__)

_UNSAFE_NAME_CHARS = re.compile(r"[^a-z0-9_-]+")


class LocalStorage:
    """Storage service keeping files under ``config.server_path``.

    File, image and filter records live in memory and can be persisted to a
    JSON index with :meth:`save_index` / :meth:`from_index`.
    """

    def __init__(self, config: Optional[StorageConfig] = None) -> None:
        self.config = config or StorageConfig()
        self._files: Dict[int, Dict[str, Any]] = {}
        self._images: Dict[int, Dict[str, Any]] = {}
        self._filters: Dict[str, FilterDefinition] = {}
        self.config.server_path.mkdir(parents=True, exist_ok=True)

    @property
    def auto_fix_missing_image_sources(self) -> bool:
        return self.config.auto_fix_missing_image_sources

    # paths

    def file_http_path(self, name: str) -> str:
        return f"{self.config.base_url}/{name}"

    def file_absolute_http_path(self, name: str) -> str:
        return self.config.absolute_base_url + self.file_http_path(name)

    def file_server_path(self, name: str) -> str:
        return str(self.config.server_path / name)

    def file_system_exists(self, name: str) -> bool:
        return (self.config.server_path / name).is_file()

    def file_system_content(self, name: str) -> Optional[bytes]:
        path = self.config.server_path / name
        if not path.is_file():
            return None
        return path.read_bytes()

    # files

    def add_file_record(self, record: Mapping[str, Any]) -> FileItem:
        data = dict(record)
        if not data.get("id"):
            data["id"] = _next_id(self._files)
        self._files[int(data["id"])] = data
        return FileItem(data, storage=self)

    def upload_file(
        self,
        source: Path,
        *,
        folder_id: int = 0,
        caption: str = "",
        is_hidden: bool = False,
    ) -> FileItem:
        """Copy *source* into the storage folder and register it as a file."""

        if not source.is_file():
            raise ValueError(f"Upload source does not exist: {source}")

        extension = source.suffix.lstrip(".").lower()
        name_new = _UNSAFE_NAME_CHARS.sub("_", source.stem.lower()).strip("_") or "file"
        digest = hashlib.sha1(source.read_bytes(), usedforsecurity=False).hexdigest()[:8]
        system_file_name = f"{name_new}_{digest}.{extension}" if extension else f"{name_new}_{digest}"

        shutil.copyfile(source, self.config.server_path / system_file_name)
        logger.info("Stored upload %s as %s", source.name, system_file_name)

        mime_type, _ = mimetypes.guess_type(source.name)
        return self.add_file_record(
            {
                "folder_id": folder_id,
                "name_original": source.name,
                "name_new": name_new,
                "name_new_compound": system_file_name,
                "mime_type": mime_type or "application/octet-stream",
                "extension": extension,
                "file_size": source.stat().st_size,
                "caption": caption,
                "is_hidden": is_hidden,
                "upload_timestamp": int(time.time()),
            }
        )

    def get_file(self, file_id: int) -> Optional[FileItem]:
        record = self._files.get(int(file_id))
        if record is None:
            logger.debug("File %s not found", file_id)
            return None
        return FileItem(record, storage=self)

    # filters

    def add_filter(self, definition: FilterDefinition) -> FilterDefinition:
        """Register *definition*; ids must stay unique across identifiers."""

        existing = self.get_filter_by_id(definition.id)
        if existing is not None and existing.identifier != definition.identifier:
            raise ValueError(
                f"Filter id {definition.id} is already used by {existing.identifier!r}"
            )
        for effect in definition.effects:
            validate_effect(effect)
        self._filters[definition.identifier] = definition
        return definition

    def get_filters_array_item(self, filter_name: str) -> Optional[FilterDefinition]:
        return self._filters.get(filter_name)

    def get_filter_by_id(self, filter_id: int) -> Optional[FilterDefinition]:
        return next((item for item in self._filters.values() if item.id == int(filter_id)), None)

    # images

    def get_image(self, image_id: int) -> Optional[ImageItem]:
        record = self._images.get(int(image_id))
        return self._image_item(record) if record is not None else None

    def find_image(self, file_id: int, filter_id: int) -> Optional[ImageItem]:
        record = self._find_image_record(file_id, filter_id)
        return self._image_item(record) if record is not None else None

    def images(self) -> List[ImageItem]:
        return [self._image_item(record) for record in self._images.values()]

    def add_image(self, file_id: int, filter_id: int, force: bool = False) -> Optional[ImageItem]:
        """Return the image for the file/filter pair, creating it when needed."""

        if not force:
            existing = self.find_image(file_id, filter_id)
            if existing is not None and existing.file_exists:
                logger.debug("Reusing image %s for file %s and filter %s", existing.id, file_id, filter_id)
                return existing
        return self.create_image(file_id, filter_id)

    def create_image(self, file_id: int, filter_id: int) -> Optional[ImageItem]:
        """Apply the filter to the file and write the derived image to disk."""

        file_item = self.get_file(file_id)
        if file_item is None:
            logger.warning("Unable to create image, file %s does not exist", file_id)
            return None
        filter_item = self.get_filter_by_id(filter_id)
        if filter_item is None:
            logger.warning("Unable to create image, filter %s does not exist", filter_id)
            return None

        source_path = self.config.server_path / file_item.system_file_name
        if not source_path.is_file():
            raise StorageError(f"Source of file {file_id} is missing: {source_path}")

        try:
            with Image.open(source_path) as original:
                image_format = original.format
                derived = apply_effects(original.copy(), filter_item.effects)
        except (UnidentifiedImageError, OSError) as exc:
            raise StorageError(f"File {file_id} is not a readable image: {source_path.name}") from exc

        target_name = f"{filter_item.id}_{file_item.system_file_name}"
        self._write_atomic(derived, self.config.server_path / target_name, image_format)
        logger.info("Created image %s from file %s with filter %s", target_name, file_id, filter_item.identifier)

        width, height = derived.size
        record = self._find_image_record(file_id, filter_item.id)
        if record is None:
            record = {"id": _next_id(self._images), "file_id": int(file_id), "filter_id": filter_item.id}
            self._images[record["id"]] = record
        record.update(resolution_width=width, resolution_height=height)
        return self._image_item(record)

    # index

    @classmethod
    def from_index(cls, config: StorageConfig, index_path: Path) -> "LocalStorage":
        storage = cls(config)
        if not index_path.exists():
            return storage

        data = json.loads(index_path.read_text(encoding="utf-8"))
        for record in data.get("files") or []:
            storage.add_file_record(record)
        for record in data.get("images") or []:
            storage._images[int(record["id"])] = dict(record)
        for item in data.get("filters") or []:
            storage.add_filter(FilterDefinition.from_dict(item))
        logger.debug("Loaded storage index %s", index_path)
        return storage

    def save_index(self, index_path: Path) -> None:
        data = {
            "files": list(self._files.values()),
            "images": list(self._images.values()),
            "filters": [item.to_dict() for item in self._filters.values()],
        }
        index_path.write_text(json.dumps(data, indent=2), encoding="utf-8")

    def _find_image_record(self, file_id: int, filter_id: int) -> Optional[Dict[str, Any]]:
        for record in self._images.values():
            if int(record["file_id"]) == int(file_id) and int(record["filter_id"]) == int(filter_id):
                return record
        return None

    def _image_item(self, record: Dict[str, Any]) -> ImageItem:
        return ImageItem(record, storage=self, config=self.config)

    def _write_atomic(self, image: Image.Image, target: Path, image_format: Optional[str]) -> None:
        if image_format == "JPEG" and image.mode not in ("RGB", "L"):
            image = image.convert("RGB")
        fd, tmp_name = tempfile.mkstemp(dir=target.parent, prefix=".", suffix=target.suffix)
        try:
            with os.fdopen(fd, "wb") as handle:
                image.save(handle, format=image_format or "PNG")
            os.replace(tmp_name, target)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise


def _next_id(records: Mapping[int, Any]) -> int:
    return max(records, default=0) + 1
