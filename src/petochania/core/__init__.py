"""Core functionality for the Petochania backend.

The core package holds everything that does not depend on HTTP:

1. **Configuration Layer** (config.py):
   - Environment-based configuration using Pydantic Settings
   - All settings prefixed with PETOCHANIA_ in .env files

2. **Storage Layer** (store.py):
   - ``SiteStore``: the JSON document with every collection and the site
     settings, mirrored to disk after each mutation under a single lock

3. **Security Layer** (security.py):
   - bcrypt password hashing and signed bearer tokens

Usage Example
-------------
    from petochania.core import SiteStore, config

    store = SiteStore(config.database_path)
    store.load()
    cats = store.list_items("cats")
"""

from petochania.core.config import PetochaniaConfig, config
from petochania.core.security import InvalidTokenError, PasswordHasher, TokenService
from petochania.core.store import (
    COLLECTIONS,
    ItemNotFoundError,
    SiteStore,
    StoreCorruptedError,
    StoreError,
)

__all__ = [
    "COLLECTIONS",
    "InvalidTokenError",
    "ItemNotFoundError",
    "PasswordHasher",
    "PetochaniaConfig",
    "SiteStore",
    "StoreCorruptedError",
    "StoreError",
    "TokenService",
    "config",
]
