from __future__ import annotations

from typing import TYPE_CHECKING, Any, Iterable, Mapping, Optional, Protocol, Sequence

if TYPE_CHECKING:
    from ..file.item import FileItem
    from ..image.item import ImageItem
    from ..models import FilterDefinition


class StorageService(Protocol):
    """Operations image and file items delegate to.

    The service owns all file system I/O, filter application and path
    computation; items only read their record and call into it.
    """

    auto_fix_missing_image_sources: bool

    def file_system_exists(self, name: str) -> bool: ...

    def file_http_path(self, name: str) -> str: ...

    def file_absolute_http_path(self, name: str) -> str: ...

    def file_server_path(self, name: str) -> str: ...

    def file_system_content(self, name: str) -> Optional[bytes]: ...

    def get_file(self, file_id: int) -> Optional["FileItem"]: ...

    def get_filters_array_item(self, filter_name: str) -> Optional["FilterDefinition"]: ...

    def add_image(self, file_id: int, filter_id: int, force: bool = False) -> Optional["ImageItem"]: ...

    def create_image(self, file_id: int, filter_id: int) -> Optional["ImageItem"]: ...


class StorageItem:
    """Read-only view over a stored key/value record."""

    def __init__(self, item_array: Mapping[str, Any]) -> None:
        self._item_array = dict(item_array)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self._item_array.get('id')!r})"

    def get_key(self, key: str, default: Any = None) -> Any:
        return self._item_array.get(key, default)

    @property
    def item_array(self) -> dict[str, Any]:
        return dict(self._item_array)

    def fields(self) -> Sequence[str]:
        return tuple(self._item_array)

    def to_dict(self, fields: Optional[Iterable[str]] = None) -> dict[str, Any]:
        """Export *fields* (default: :meth:`fields`) by reading the like-named attributes."""

        names = list(fields) if fields is not None else list(self.fields())
        unknown = [name for name in names if name not in self.fields()]
        if unknown:
            raise ValueError(f"Unknown fields for {type(self).__name__}: {', '.join(unknown)}")
        return {
            name: getattr(self, name) if hasattr(type(self), name) else self.get_key(name)
            for name in names
        }
