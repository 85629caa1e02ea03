"""Backend adapters (identity and issues store).

Implementations live in issueboard.adapters.supabase and
issueboard.adapters.memory.
"""

from issueboard.adapters.base import (
    AuthRequired,
    IdentityAdapter,
    IssueStoreAdapter,
    StoreError,
    Subscription,
)

__all__ = ["AuthRequired", "IdentityAdapter", "IssueStoreAdapter", "StoreError", "Subscription"]
