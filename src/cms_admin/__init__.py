from .assets.bower_vendor import AdminUser, AssetBundle, BowerVendorBundle, resolve_admin_language
from .config import StorageConfig
from .exceptions import FileNotFoundInStorage, StorageError
from .file.item import FileItem
from .image.item import ImageItem
from .image_processing.filters import apply_effects
from .media.downloader import VendorDownloader
from .models import FilterDefinition, FilterEffect
from .storage.base import StorageItem, StorageService
from .storage.local import LocalStorage

__all__ = [
    "AdminUser",
    "AssetBundle",
    "BowerVendorBundle",
    "resolve_admin_language",
    "StorageConfig",
    "FileNotFoundInStorage",
    "StorageError",
    "FileItem",
    "ImageItem",
    "apply_effects",
    "VendorDownloader",
    "FilterDefinition",
    "FilterEffect",
    "StorageItem",
    "StorageService",
    "LocalStorage",
]
