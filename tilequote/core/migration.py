"""
Import of browser local-storage dumps.
Loads a JSON export of the shop's browser data into a repository, backing up
whatever the repository held before.
"""

import json
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Union

from tilequote.core.editing import recalculate
from tilequote.core.logging_config import get_logger, log_function_call
from tilequote.core.models import Collection, ProductCategory, catalog_item_from_record
from tilequote.core.paths import AppPaths, app_paths
from tilequote.core.storage import Repository

logger = get_logger(__name__)

LIST_KEYS = {
    'customers': Collection.CUSTOMERS,
    'staff': Collection.STAFF,
    'savedQuotations': Collection.QUOTATIONS,
    'quotationProducts': Collection.DRAFT_ITEMS,
}


def _decode(value: Any) -> Any:
    """Local storage holds strings; most of them are JSON."""
    if isinstance(value, str):
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            return value
    return value


def read_dump(path: Union[str, Path]) -> Dict[str, Any]:
    with open(path, 'r', encoding='utf-8') as f:
        raw = json.load(f)
    if not isinstance(raw, dict):
        raise ValueError(f"{path}: expected a JSON object of local-storage keys")
    return {key: _decode(value) for key, value in raw.items()}


def backup_repository(repository: Repository, paths: AppPaths = app_paths) -> Path:
    """Write every collection to a timestamped JSON directory."""
    backup_dir = paths.backup_dir / f"collections_{datetime.now().strftime('%Y%m%d_%H%M%S')}"
    backup_dir.mkdir(parents=True, exist_ok=True)

    for collection in Collection:
        with open(backup_dir / f"{collection.value}.json", 'w', encoding='utf-8') as f:
            json.dump(repository.load(collection), f, indent=2, ensure_ascii=False, default=str)

    logger.info(f"Collections backed up to: {backup_dir}")
    return backup_dir


@log_function_call
def import_local_storage_dump(path: Union[str, Path], repository: Repository,
                              paths: AppPaths = app_paths,
                              backup: bool = True) -> Dict[str, int]:
    """
    Import a local-storage dump into the repository.

    Only collections present in the dump are replaced. Catalog items get their
    derived fields recomputed on the way in.

    Args:
        path: JSON file mapping local-storage keys to values
        repository: Target repository
        paths: Application paths, for the backup directory
        backup: Back up existing collections first

    Returns:
        Number of records imported per collection name
    """
    data = read_dump(path)
    backup_dir: Optional[Path] = backup_repository(repository, paths) if backup else None
    counts: Dict[str, int] = {}

    products = data.get('products')
    if isinstance(products, dict):
        for category in ProductCategory:
            if category.value not in products:
                continue
            items = [recalculate(catalog_item_from_record(category, record))
                     for record in products[category.value] or []]
            collection = Collection.for_category(category)
            repository.save(collection, [item.to_record() for item in items])
            counts[collection.value] = len(items)

    for key, collection in LIST_KEYS.items():
        if key not in data:
            continue
        records = data[key] or []
        if not isinstance(records, list):
            raise ValueError(f"{path}: '{key}' must be a list")
        repository.save(collection, records)
        counts[collection.value] = len(records)

    settings = data.get('businessSettings')
    if isinstance(settings, dict):
        repository.save(Collection.BUSINESS_SETTINGS, [settings])
        counts[Collection.BUSINESS_SETTINGS.value] = 1

    logger.info(f"Imported {sum(counts.values())} records from {path}"
                + (f" (backup: {backup_dir})" if backup_dir else ""))
    return counts
