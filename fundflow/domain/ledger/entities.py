# fundflow/domain/ledger/entities.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from .value_objects import DEFAULT_TRANSACTION_TYPE, Direction


@dataclass(frozen=True)
class TransactionRecord:
    """One ledger line, as exported by the bank. Immutable.

    direction is relative to owner_id. Validated once here so aggregation can
    trust every field."""

    owner_id: str
    counterpart_id: str
    direction: Direction
    amount: Decimal = Decimal("0")
    owner_name: str | None = None
    id_document: str | None = None
    timestamp: datetime | None = None
    counterpart_name: str | None = None
    counterpart_bank: str | None = None
    description: str | None = None
    transaction_type: str = DEFAULT_TRANSACTION_TYPE
    running_balance: Decimal | None = None

    def __post_init__(self) -> None:
        owner = (self.owner_id or "").strip()
        counterpart = (self.counterpart_id or "").strip()
        if not owner:
            raise ValueError("Record without owner id")
        if not counterpart:
            raise ValueError("Record without counterpart id")
        if self.amount < Decimal("0"):
            raise ValueError("Transaction amount cannot be negative")
        object.__setattr__(self, "owner_id", owner)
        object.__setattr__(self, "counterpart_id", counterpart)
        object.__setattr__(self, "direction", Direction(self.direction))
        tx_type = (self.transaction_type or "").strip()
        object.__setattr__(self, "transaction_type", tx_type or DEFAULT_TRANSACTION_TYPE)

    def involves(self, entity_id: str) -> bool:
        return entity_id in (self.owner_id, self.counterpart_id)
