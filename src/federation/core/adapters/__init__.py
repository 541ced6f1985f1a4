"""Host-facing adapters over canonical user records."""

from .read_only_user import (
    AdapterState,
    ReadOnlyUserAdapter,
    external_id_from_storage_id,
    storage_id,
)

__all__ = [
    "AdapterState",
    "ReadOnlyUserAdapter",
    "external_id_from_storage_id",
    "storage_id",
]
