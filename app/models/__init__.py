from .store_snapshot import StoreSnapshot

__all__ = [
    "StoreSnapshot",
]
