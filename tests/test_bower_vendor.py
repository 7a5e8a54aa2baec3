from __future__ import annotations

import pytest

from cms_admin.assets.bower_vendor import AdminUser, BowerVendorBundle, resolve_admin_language
from cms_admin.config import StorageConfig


def _without_locale(bundle: BowerVendorBundle) -> list[str]:
    return [path for path in bundle.js if not path.startswith("angular-i18n/")]


@pytest.mark.parametrize("language", ["en", "de", "fr", "pt-br"])
def test_single_locale_script(language: str) -> None:
    bundle = BowerVendorBundle(language)
    locale_entries = [path for path in bundle.js if path.startswith("angular-i18n/")]
    assert locale_entries == [f"angular-i18n/angular-locale_{language}.js"]
    assert bundle.js[2] == bundle.locale_script


def test_other_scripts_do_not_depend_on_language() -> None:
    english = BowerVendorBundle("en")
    german = BowerVendorBundle("de")
    assert _without_locale(english) == _without_locale(german)
    assert _without_locale(english)[:2] == ["jquery-ui/jquery-ui.min.js", "angular/angular.min.js"]
    assert english.js[-1] == "angular-chosen/angular-chosen.min.js"
    assert len(english.js) == 14


def test_bundles_do_not_share_lists() -> None:
    bundle = BowerVendorBundle("en")
    bundle.css.append("extra.css")
    assert BowerVendorBundle("en").css == ["angular-chosen/chosen.min.css"]


def test_files_lists_css_before_js() -> None:
    bundle = BowerVendorBundle("en")
    files = list(bundle.files())
    assert files[0] == "angular-chosen/chosen.min.css"
    assert files[1:] == bundle.js


def test_empty_language_is_rejected() -> None:
    with pytest.raises(ValueError):
        BowerVendorBundle("  ")


@pytest.mark.parametrize(
    "user, expected",
    [
        (None, "en"),
        (AdminUser(is_guest=True, settings={"admin_language": "de"}), "en"),
        (AdminUser(is_guest=False, settings={"admin_language": "de"}), "de"),
        (AdminUser(is_guest=False), "en"),
    ],
)
def test_resolve_admin_language(user, expected: str) -> None:
    assert resolve_admin_language(user, default="en") == expected


def test_bundle_for_user() -> None:
    bundle = BowerVendorBundle.for_user(AdminUser(is_guest=False, settings={"admin_language": "fr"}))
    assert bundle.language == "fr"
    assert "angular-i18n/angular-locale_fr.js" in bundle.js


def test_guest_gets_configured_language() -> None:
    config = StorageConfig(admin_language="de")
    assert BowerVendorBundle.for_user(AdminUser(is_guest=True), config).language == "de"
    assert BowerVendorBundle.for_user(None, config).locale_script == "angular-i18n/angular-locale_de.js"


@pytest.mark.parametrize("language", ["../../x", "de.js", "en/US"])
def test_language_must_be_a_plain_code(language: str) -> None:
    with pytest.raises(ValueError, match="Invalid language code"):
        BowerVendorBundle(language)


def test_invalid_user_setting_falls_back_to_default() -> None:
    user = AdminUser(is_guest=False, settings={"admin_language": "../../x"})
    assert resolve_admin_language(user, default="fr") == "fr"
