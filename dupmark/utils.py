"""
Snapshot (de)serialization helpers.

A snapshot file is a JSON list of bookmark objects, or an object with a
``bookmarks`` list, using either snake_case or camelCase field names.
"""
import json
import logging
import os
from typing import Any, Dict, Iterable, List

from dupmark.entities import BookmarkSnapshot

logger = logging.getLogger(__name__)


def is_snapshot_json(obj) -> bool:
    """
    Check if an object looks like a list of bookmark dictionaries.

    Args:
        obj: The object to check

    Returns:
        bool: True if every item has at least an id and a url
    """
    if not isinstance(obj, list):
        return False
    return all(isinstance(item, dict) and 'id' in item and 'url' in item for item in obj)


def load_snapshots(path: str) -> List[BookmarkSnapshot]:
    """
    Load bookmark snapshots from a JSON file.

    Args:
        path: JSON file to read

    Returns:
        list: Snapshots in file order

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the file is not valid JSON or not a bookmark list
    """
    with open(path, 'r', encoding='utf-8') as file:
        try:
            data = json.load(file)
        except json.JSONDecodeError as e:
            logger.error(f"Error decoding JSON from {path}: {e}")
            raise ValueError(f"{path} is not valid JSON: {e}") from e

    if isinstance(data, dict):
        data = data.get('bookmarks', [])
    if not is_snapshot_json(data):
        raise ValueError(f"{path} does not contain a list of bookmarks with 'id' and 'url'")

    snapshots = [BookmarkSnapshot.from_dict(item) for item in data]
    logger.debug(f"Loaded {len(snapshots)} bookmarks from {path}.")
    return snapshots


def snapshots_to_json(snapshots: Iterable[BookmarkSnapshot]) -> List[Dict[str, Any]]:
    return [s.to_dict() for s in snapshots]


def save_snapshots(snapshots: Iterable[BookmarkSnapshot], path: str):
    """Write snapshots to a JSON file, creating parent directories."""
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    data = snapshots_to_json(snapshots)
    with open(path, 'w', encoding='utf-8') as file:
        json.dump(data, file, ensure_ascii=False, indent=2)
    logger.debug(f"Saved {len(data)} bookmarks to {path}.")
