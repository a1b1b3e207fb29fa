from flask import current_app

from .base import Storage
from .database import DatabaseStorage
from .memory import MemoryStorage

BACKENDS = {
    "database": DatabaseStorage,
    "memory": MemoryStorage,
}


def create_storage(backend: str) -> Storage:
    try:
        return BACKENDS[backend]()
    except KeyError:
        raise ValueError(f"Unknown STORAGE_BACKEND '{backend}'. Use one of: {', '.join(BACKENDS)}.")


def get_storage() -> Storage:
    return current_app.extensions["storage"]
