from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import List, Optional, Sequence

from ..config import StorageConfig
from ..exceptions import StorageError
from ..image_processing.filters import validate_effect
from ..models import FilterDefinition, FilterEffect
from ..storage.local import LocalStorage


logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Manage admin storage images")
    parser.add_argument(
        "--index", type=Path, default=Path("storage-index.json"), help="JSON index of files, images and filters"
    )
    parser.add_argument(
        "--root", type=Path, default=None, help="Storage folder (defaults to CMS_STORAGE_PATH)"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    add_filter = subparsers.add_parser("add-filter", help="Register a filter")
    add_filter.add_argument("id", type=int)
    add_filter.add_argument("identifier", help="Filter name, e.g. tiny-thumbnail")
    add_filter.add_argument(
        "effects", nargs="+", help="Effects as name:WIDTHxHEIGHT[:mode], e.g. thumbnail:40x40:outbound"
    )

    upload = subparsers.add_parser("upload", help="Store a file and optionally apply a filter")
    upload.add_argument("path", type=Path)
    upload.add_argument("--caption", default="")
    upload.add_argument("--filter", dest="filter_name", default=None)

    apply_filter = subparsers.add_parser("apply-filter", help="Apply a filter to the file of an image")
    apply_filter.add_argument("image_id", type=int)
    apply_filter.add_argument("filter_name")

    subparsers.add_parser("fix-missing", help="Regenerate images whose derived file is missing")
    return parser.parse_args(argv)


def parse_effect(value: str) -> FilterEffect:
    parts = value.split(":")
    if len(parts) not in (2, 3) or "x" not in parts[1]:
        raise ValueError(f"Invalid effect {value!r}, expected name:WIDTHxHEIGHT[:mode]")
    width, height = parts[1].lower().split("x", 1)
    effect = FilterEffect(
        name=parts[0],
        width=int(width),
        height=int(height),
        mode=parts[2] if len(parts) == 3 else None,
    )
    validate_effect(effect)
    return effect


def fix_missing(storage: LocalStorage) -> List[int]:
    """Regenerate every registered image without a derived file on disk."""

    fixed: List[int] = []
    for image in storage.images():
        if image.file_exists:
            continue
        logger.info("Regenerating %s", image.system_file_name)
        if storage.create_image(image.file_id, image.filter_id) is not None:
            fixed.append(image.id)
    return fixed


def _run(args: argparse.Namespace, storage: LocalStorage) -> None:
    if args.command == "add-filter":
        effects = [parse_effect(value) for value in args.effects]
        storage.add_filter(FilterDefinition(id=args.id, identifier=args.identifier, effects=effects))
        logger.info("Registered filter %s (id=%s)", args.identifier, args.id)
    elif args.command == "upload":
        file_item = storage.upload_file(args.path, caption=args.caption)
        logger.info("Stored file %s as %s", file_item.id, file_item.system_file_name)
        if args.filter_name:
            filter_item = storage.get_filters_array_item(args.filter_name)
            if filter_item is None:
                raise ValueError(f"Unknown filter: {args.filter_name}")
            image = storage.add_image(file_item.id, filter_item.id, force=not storage.config.is_production)
            if image is not None:
                logger.info("Created image %s at %s", image.id, image.source)
    elif args.command == "apply-filter":
        image = storage.get_image(args.image_id)
        if image is None:
            raise ValueError(f"Unknown image: {args.image_id}")
        if storage.get_filters_array_item(args.filter_name) is None:
            raise ValueError(f"Unknown filter: {args.filter_name}")
        derived = image.apply_filter(args.filter_name)
        if derived is None:
            raise StorageError(
                f"Unable to apply {args.filter_name} to image {image.id}, file {image.file_id} is missing"
            )
        logger.info("Image %s available at %s", derived.id, derived.source)
    elif args.command == "fix-missing":
        fixed = fix_missing(storage)
        logger.info("Regenerated %s images", len(fixed))


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = parse_args(argv)
    config = StorageConfig.from_env()
    if args.root is not None:
        config.server_path = args.root
    storage = LocalStorage.from_index(config, args.index)

    try:
        _run(args, storage)
    except (ValueError, StorageError) as exc:
        logger.error("%s", exc)
        # an upload may have been stored before the filter step failed
        storage.save_index(args.index)
        raise SystemExit(1) from exc

    storage.save_index(args.index)


if __name__ == "__main__":
    main()
