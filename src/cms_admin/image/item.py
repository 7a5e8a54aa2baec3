from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Mapping, Optional, Sequence

from ..config import StorageConfig
from ..exceptions import FileNotFoundInStorage
from ..storage.base import StorageItem

if TYPE_CHECKING:
    from ..file.item import FileItem
    from ..storage.base import StorageService

logger = logging.getLogger(__name__)


class ImageItem(StorageItem):
    """A file with a filter applied, as stored by the storage service.

    Record keys: ``id``, ``file_id``, ``filter_id``, ``resolution_width``,
    ``resolution_height`` and an optional ``caption``. The caption and the
    parent file are resolved on first access and kept for the lifetime of
    the object.
    """

    def __init__(
        self,
        item_array: Mapping[str, Any],
        storage: "StorageService",
        config: Optional[StorageConfig] = None,
    ) -> None:
        super().__init__(item_array)
        self.storage = storage
        self.config = config or StorageConfig()
        self._file: Optional["FileItem"] = None
        self._caption: Optional[str] = None

    def set_caption(self, text: str) -> None:
        """Override the caption; the stored record is left untouched."""
        self._caption = text.strip()

    @property
    def caption(self) -> str:
        """The explicit caption, else the record's caption, else the file's caption."""
        if self._caption is None:
            if self.get_key("caption", False):
                self._caption = self.get_key("caption")
            else:
                self._caption = self.file.caption
        return self._caption

    @caption.setter
    def caption(self, text: str) -> None:
        self.set_caption(text)

    @property
    def id(self) -> int:
        return int(self.get_key("id") or 0)

    @property
    def file_id(self) -> int:
        return int(self.get_key("file_id") or 0)

    @property
    def filter_id(self) -> int:
        return int(self.get_key("filter_id") or 0)

    @property
    def resolution_width(self) -> int:
        return int(self.get_key("resolution_width") or 0)

    @property
    def resolution_height(self) -> int:
        return int(self.get_key("resolution_height") or 0)

    def get_source(self, scheme: bool = False) -> Optional[str]:
        """Web path of the derived image, absolute when *scheme* is true.

        A missing derived file is regenerated through the storage service
        unless ``auto_fix_missing_image_sources`` is disabled, in which case
        ``None`` is returned.
        """

        if not self.file_exists:
            if not self.storage.auto_fix_missing_image_sources:
                logger.debug("Image %s has no source on disk, auto fix disabled", self.id)
                return None

            logger.info(
                "Regenerating missing image source %s (file_id=%s, filter_id=%s)",
                self.system_file_name,
                self.file_id,
                self.filter_id,
            )
            self.storage.create_image(self.file_id, self.filter_id)

        file_name = self.system_file_name
        if scheme:
            return self.storage.file_absolute_http_path(file_name)
        return self.storage.file_http_path(file_name)

    @property
    def source(self) -> Optional[str]:
        return self.get_source()

    @property
    def source_absolute(self) -> Optional[str]:
        return self.get_source(True)

    @property
    def server_source(self) -> str:
        return self.storage.file_server_path(self.system_file_name)

    @property
    def file_exists(self) -> bool:
        return self.storage.file_system_exists(self.system_file_name)

    @property
    def system_file_name(self) -> str:
        return f"{self.filter_id}_{self.file.system_file_name}"

    @property
    def content(self) -> Optional[bytes]:
        return self.storage.file_system_content(self.system_file_name)

    @property
    def file(self) -> "FileItem":
        """The file this image was created from."""
        if self._file is None:
            file_item = self.storage.get_file(self.file_id)
            if not file_item:
                raise FileNotFoundInStorage(self.file_id)
            self._file = file_item
        return self._file

    def apply_filter(self, filter_name: str) -> Optional["ImageItem"]:
        """Apply *filter_name* (e.g. ``tiny-thumbnail``) to the original file.

        Returns ``None`` for an unknown filter. Outside production the derived
        image is always regenerated.
        """

        filter_item = self.storage.get_filters_array_item(filter_name)
        if filter_item is None:
            logger.debug("Unknown filter %r requested for image %s", filter_name, self.id)
            return None
        return self.storage.add_image(
            self.file_id, filter_item.id, force=not self.config.is_production
        )

    def fields(self) -> Sequence[str]:
        return (
            "id",
            "file_id",
            "filter_id",
            "source",
            "server_source",
            "resolution_width",
            "resolution_height",
            "caption",
        )
