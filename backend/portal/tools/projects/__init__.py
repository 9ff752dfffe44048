from .factory import (
    DepositPolicy,
    compute_deposit_cents,
    materialize,
    resolve_deposit_policy,
    update_schedule,
)

__all__ = [
    "DepositPolicy",
    "compute_deposit_cents",
    "materialize",
    "resolve_deposit_policy",
    "update_schedule",
]
