from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Mapping, Optional, Sequence

from ..storage.base import StorageItem

if TYPE_CHECKING:
    from ..storage.base import StorageService

_SIZE_UNITS = ("B", "KB", "MB", "GB", "TB")


class FileItem(StorageItem):
    """An uploaded file; images are derived from it by applying filters."""

    def __init__(
        self,
        item_array: Mapping[str, Any],
        storage: Optional["StorageService"] = None,
    ) -> None:
        super().__init__(item_array)
        self.storage = storage
        self._caption: Optional[str] = None

    def set_caption(self, text: str) -> None:
        self._caption = text.strip()

    @property
    def caption(self) -> str:
        if self._caption is None:
            self._caption = str(self.get_key("caption") or "")
        return self._caption

    @caption.setter
    def caption(self, text: str) -> None:
        self.set_caption(text)

    @property
    def id(self) -> int:
        return int(self.get_key("id") or 0)

    @property
    def folder_id(self) -> int:
        return int(self.get_key("folder_id") or 0)

    @property
    def name(self) -> str:
        """The name of the file as it was uploaded."""
        return str(self.get_key("name_original") or "")

    @property
    def system_file_name(self) -> str:
        return str(self.get_key("name_new_compound") or "")

    @property
    def mime_type(self) -> str:
        return str(self.get_key("mime_type") or "")

    @property
    def extension(self) -> str:
        return str(self.get_key("extension") or "")

    @property
    def size(self) -> int:
        return int(self.get_key("file_size") or 0)

    @property
    def size_readable(self) -> str:
        size = float(self.size)
        for unit in _SIZE_UNITS:
            if size < 1024 or unit == _SIZE_UNITS[-1]:
                break
            size /= 1024
        if unit == "B":
            return f"{int(size)} {unit}"
        return f"{size:.2f} {unit}"

    @property
    def is_hidden(self) -> bool:
        return bool(self.get_key("is_hidden", False))

    @property
    def is_image(self) -> bool:
        return self.mime_type.startswith("image/")

    @property
    def upload_timestamp(self) -> Optional[datetime]:
        value = self.get_key("upload_timestamp")
        if value is None:
            return None
        return datetime.fromtimestamp(int(value), tz=timezone.utc)

    @property
    def source(self) -> str:
        return self._require_storage().file_http_path(self.system_file_name)

    @property
    def source_absolute(self) -> str:
        return self._require_storage().file_absolute_http_path(self.system_file_name)

    @property
    def server_source(self) -> str:
        return self._require_storage().file_server_path(self.system_file_name)

    @property
    def file_exists(self) -> bool:
        return self._require_storage().file_system_exists(self.system_file_name)

    @property
    def content(self) -> Optional[bytes]:
        return self._require_storage().file_system_content(self.system_file_name)

    def fields(self) -> Sequence[str]:
        return (
            "id",
            "folder_id",
            "name",
            "system_file_name",
            "mime_type",
            "extension",
            "size",
            "size_readable",
            "caption",
            "is_hidden",
            "is_image",
            "source",
        )

    def _require_storage(self) -> "StorageService":
        if self.storage is None:
            raise RuntimeError("FileItem is not bound to a storage service")
        return self.storage
