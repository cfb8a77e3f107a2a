from beydex.db.database import get_session, init_db
from beydex.db.operations import (
    add_collection_item,
    catalog_entry_to_model,
    collection_item_to_model,
    count_catalog,
    delete_catalog_entry,
    delete_collection_item,
    find_owned,
    get_catalog_entry,
    get_catalog_entry_by_name,
    get_collection_item,
    insert_catalog_entry,
    list_catalog,
    list_collection,
    owner_counts,
    reassign_entries,
    rename_generation,
    rename_series,
    repoint_items,
)

__all__ = [
    "add_collection_item",
    "catalog_entry_to_model",
    "collection_item_to_model",
    "count_catalog",
    "delete_catalog_entry",
    "delete_collection_item",
    "find_owned",
    "get_catalog_entry",
    "get_catalog_entry_by_name",
    "get_collection_item",
    "get_session",
    "init_db",
    "insert_catalog_entry",
    "list_catalog",
    "list_collection",
    "owner_counts",
    "reassign_entries",
    "rename_generation",
    "rename_series",
    "repoint_items",
]
