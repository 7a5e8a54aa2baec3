from __future__ import annotations

import logging
from typing import Callable, Dict, Iterable

import numpy as np
from PIL import Image, ImageOps

from ..models import FilterEffect

try:
    import cv2
except ImportError as exc:  # pragma: no cover - optional dependency guard
    raise RuntimeError("OpenCV is required for image filters") from exc

logger = logging.getLogger(__name__)

THUMBNAIL_OUTBOUND = "outbound"
THUMBNAIL_INSET = "inset"


def _require_size(effect: FilterEffect) -> tuple[int, int]:
    if not effect.width or not effect.height or effect.width <= 0 or effect.height <= 0:
        raise ValueError(f"Effect {effect.name!r} requires positive width and height")
    return effect.width, effect.height


def thumbnail(image: Image.Image, effect: FilterEffect) -> Image.Image:
    size = _require_size(effect)
    mode = effect.mode or THUMBNAIL_OUTBOUND
    logger.debug("Thumbnail %sx%s (%s)", size[0], size[1], mode)
    if mode == THUMBNAIL_OUTBOUND:
        return ImageOps.fit(image, size, Image.Resampling.LANCZOS)
    if mode == THUMBNAIL_INSET:
        inset = image.copy()
        inset.thumbnail(size, Image.Resampling.LANCZOS)
        return inset
    raise ValueError(f"Unknown thumbnail mode: {mode!r}")


def crop(image: Image.Image, effect: FilterEffect) -> Image.Image:
    width, height = _require_size(effect)
    logger.debug("Crop %sx%s at (%s, %s)", width, height, effect.x, effect.y)
    np_img = np.array(image)
    img_height, img_width = np_img.shape[:2]
    left = min(max(effect.x, 0), max(img_width - 1, 0))
    top = min(max(effect.y, 0), max(img_height - 1, 0))
    cropped = np_img[top : min(top + height, img_height), left : min(left + width, img_width)]
    return Image.fromarray(np.ascontiguousarray(cropped))


def resize(image: Image.Image, effect: FilterEffect) -> Image.Image:
    width, height = _require_size(effect)
    logger.debug("Resize to %sx%s", width, height)
    np_img = np.array(image)
    resized = cv2.resize(np_img, (width, height), interpolation=cv2.INTER_AREA)
    return Image.fromarray(resized)


EFFECTS: Dict[str, Callable[[Image.Image, FilterEffect], Image.Image]] = {
    "thumbnail": thumbnail,
    "crop": crop,
    "resize": resize,
}


def validate_effect(effect: FilterEffect) -> None:
    """Raise ``ValueError`` unless *effect* can be applied by :func:`apply_effects`."""

    if effect.name not in EFFECTS:
        raise ValueError(f"Unknown filter effect: {effect.name!r}")
    _require_size(effect)
    if effect.name == "thumbnail" and effect.mode not in (None, THUMBNAIL_OUTBOUND, THUMBNAIL_INSET):
        raise ValueError(f"Unknown thumbnail mode: {effect.mode!r}")


def apply_effects(image: Image.Image, effects: Iterable[FilterEffect]) -> Image.Image:
    """Run *effects* in order and return the derived image."""

    if image.mode not in ("RGB", "RGBA", "L"):
        image = image.convert("RGBA")
    for effect in effects:
        handler = EFFECTS.get(effect.name)
        if handler is None:
            raise ValueError(f"Unknown filter effect: {effect.name!r}")
        image = handler(image, effect)
    return image
