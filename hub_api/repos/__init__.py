"""
Repository layer for the Startup Hub API gateway.

All SQL lives here and ONLY here. No database access outside this module.
"""

from hub_api.repos.api_token_repo import ApiTokenRepo, TokenStore
from hub_api.repos.memory_token_repo import InMemoryTokenRepo

__all__ = [
    "TokenStore",
    "ApiTokenRepo",
    "InMemoryTokenRepo",
]
