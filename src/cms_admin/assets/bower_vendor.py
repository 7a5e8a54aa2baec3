from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional

from ..config import StorageConfig

logger = logging.getLogger(__name__)

ADMIN_LANGUAGE_SETTING = "admin_language"

_LANGUAGE_PATTERN = re.compile(r"[A-Za-z0-9_-]+")


@dataclass(slots=True)
class AdminUser:
    """The parts of the signed-in admin user that bundles care about."""

    is_guest: bool = True
    settings: Dict[str, Any] = field(default_factory=dict)

    def get_setting(self, key: str, default: Any = None) -> Any:
        return self.settings.get(key, default)


def resolve_admin_language(user: Optional[AdminUser] = None, default: str = "en") -> str:
    """Return the signed-in user's admin language, else *default*."""

    if user is None or user.is_guest:
        return default
    language = str(user.get_setting(ADMIN_LANGUAGE_SETTING, default) or default)
    if not _LANGUAGE_PATTERN.fullmatch(language):
        logger.warning("Ignoring invalid admin language setting %r", language)
        return default
    return language


class AssetBundle:
    """Static list of scripts and styles located under ``source_path``."""

    source_path: str = ""
    css: List[str] = []
    js: List[str] = []
    depends: List[str] = []

    def __init__(self) -> None:
        self.css = list(type(self).css)
        self.js = list(type(self).js)
        self.depends = list(type(self).depends)
        self.init()

    def init(self) -> None:
        """Hook for subclasses that need runtime values to build their lists."""

    def files(self) -> Iterator[str]:
        yield from self.css
        yield from self.js


class BowerVendorBundle(AssetBundle):
    """Third-party scripts of the admin panel, stored in the vendor folder.

    The angular locale file depends on the admin language, so the script
    list is assembled at construction time instead of being a class
    attribute.
    """

    source_path = "@admin/resources/bowervendor"

    css = [
        "angular-chosen/chosen.min.css",
    ]

    def __init__(self, language: str = "en") -> None:
        language = (language or "").strip()
        if not _LANGUAGE_PATTERN.fullmatch(language):
            raise ValueError(f"Invalid language code: {language!r}")
        self.language = language
        super().__init__()

    @classmethod
    def for_user(
        cls, user: Optional[AdminUser], config: Optional[StorageConfig] = None
    ) -> "BowerVendorBundle":
        """Bundle in the user's language, else the configured admin language."""
        default = (config or StorageConfig()).admin_language
        return cls(resolve_admin_language(user, default))

    def init(self) -> None:
        self.js = [
            # jquery ui
            "jquery-ui/jquery-ui.min.js",
            # angular
            "angular/angular.min.js",
            f"angular-i18n/angular-locale_{self.language}.js",
            # ui router
            "angular-ui-router/release/angular-ui-router.min.js",
            "angular-dragdrop/src/angular-dragdrop.min.js",
            "angular-loading-bar/build/loading-bar.min.js",
            "angular-slugify/angular-slugify.js",
            "twig.js/twig.min.js",
            # wysiwyg editor
            "ng-wig/dist/ng-wig.min.js",
            # file upload
            "ng-file-upload/ng-file-upload.min.js",
            "ng-file-upload/ng-file-upload-shim.min.js",
            "angular-filter.min.js",
            "angular-datepicker/datepicker.min.js",
            "angular-chosen/angular-chosen.min.js",
        ]

    @property
    def locale_script(self) -> str:
        return f"angular-i18n/angular-locale_{self.language}.js"
