"""Async client for the Custom Dining REST backend.

Typical use:

    store = MemoryStore()
    async with ApiClient(StoredCredentials(store)) as api:
        result = await api.get("/meals")
        if result.success:
            ...
"""
from importlib.metadata import PackageNotFoundError, version

from .client import ApiClient, normalize_error
from .credentials import CredentialProvider, FileStore, KeyValueStore, MemoryStore, StoredCredentials
from .types import ApiResult, BackendReportedError, DecodeError

try:  # Resolves once installed; plain checkouts fall back to a default.
    __version__ = version("custom-dining-client")
except PackageNotFoundError:  # pragma: no cover
    __version__ = "0.0.0"

__all__ = [
    "ApiClient",
    "ApiResult",
    "BackendReportedError",
    "CredentialProvider",
    "DecodeError",
    "FileStore",
    "KeyValueStore",
    "MemoryStore",
    "StoredCredentials",
    "normalize_error",
]
