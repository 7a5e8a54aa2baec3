"""Errors raised by the storage layer."""

from __future__ import annotations


class StorageError(RuntimeError):
    """Base exception for storage failures."""


class FileNotFoundInStorage(StorageError):
    """A referenced file record no longer exists in the storage system."""

    def __init__(self, file_id: int) -> None:
        super().__init__(f'The file "{file_id}" does not exist in the storage system.')
        self.file_id = file_id
