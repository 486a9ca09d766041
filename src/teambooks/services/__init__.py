"""Service module exports."""

from . import (
    balances,
    categories,
    ledger,
    lifecycle,
    memberships,
    permissions,
    teams,
    users,
)

__all__ = [
    "balances",
    "categories",
    "ledger",
    "lifecycle",
    "memberships",
    "permissions",
    "teams",
    "users",
]
