"""Filesystem and naming helpers."""

from __future__ import annotations

import logging
import os
import re
import shutil
import tempfile
from pathlib import Path

logger = logging.getLogger(__name__)

UNSAFE_NAME_CHARACTERS = '/\\:*?"<>|'
_UNSAFE_NAME_PATTERN = re.compile(r'[/\\:*?"<>|\x00-\x1f\x7f]')
_WHITESPACE_PATTERN = re.compile(r"\s+")


def ensure_directory(path: Path) -> Path:
    """Create a directory if it does not exist."""

    path.mkdir(parents=True, exist_ok=True)
    logger.debug("Ensured directory exists: %s", path)
    return path


def has_unsafe_characters(name: str) -> bool:
    """Return True if the name cannot be used as a single path segment."""

    return _UNSAFE_NAME_PATTERN.search(name) is not None


def safe_stage_name(name: str) -> str:
    """Return a filesystem-safe stage name (spaces and separators become underscores)."""

    cleaned = _WHITESPACE_PATTERN.sub("_", name.strip())
    cleaned = _UNSAFE_NAME_PATTERN.sub("_", cleaned)
    if cleaned in ("", ".", ".."):
        return "stage"
    return cleaned


def default_output_path(project_path: Path, stage_name: str, suffix: str = ".zip") -> Path:
    """Return a default package path next to the project file."""

    if suffix and not suffix.startswith("."):
        suffix = "." + suffix
    return project_path.parent / f"{safe_stage_name(stage_name)}{suffix}"


def publish(source: Path, destination: Path, overwrite: bool = True) -> Path:
    """Move a finished file or folder into place in a single rename.

    Replacing a folder first moves the old one aside into a fresh scratch
    directory beside ``destination`` and moves it back if the new folder cannot
    be put in place.
    """

    if destination.exists():
        if not overwrite:
            raise FileExistsError(f"Destination already exists: {destination}")
        if destination.is_dir() and source.is_dir():
            _swap_folder(source, destination)
            return destination
    os.replace(source, destination)
    logger.debug("Published %s", destination)
    return destination


def _swap_folder(source: Path, destination: Path) -> None:
    # os.replace cannot overwrite a non-empty directory.
    holder = Path(tempfile.mkdtemp(prefix=f".{destination.name}-parked-", dir=destination.parent))
    parked = holder / destination.name
    try:
        os.replace(destination, parked)
    except OSError:
        remove_tree(holder)
        raise
    try:
        os.replace(source, destination)
    except OSError:
        try:
            os.replace(parked, destination)
        except OSError:
            logger.error("Could not restore %s; the previous folder is kept at %s", destination, parked)
            raise
        remove_tree(holder)
        logger.warning("Could not replace %s; previous folder restored", destination)
        raise
    remove_tree(holder)
    logger.debug("Replaced folder %s", destination)


def remove_tree(path: Path) -> None:
    """Remove a scratch file or directory if it exists."""

    if path.is_dir():
        shutil.rmtree(path, ignore_errors=True)
    elif path.exists():
        path.unlink()
