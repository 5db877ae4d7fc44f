# fundflow/domain/ledger/value_objects.py
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from enum import StrEnum

DEFAULT_TRANSACTION_TYPE = "transfer"

# Labels found in bank exports for the same two directions.
_DIRECTION_ALIASES: dict[str, str] = {
    "in": "in",
    "inflow": "in",
    "credit": "in",
    "收": "in",
    "进": "in",
    "out": "out",
    "outflow": "out",
    "debit": "out",
    "付": "out",
    "出": "out",
}


class Direction(StrEnum):
    """Direction of a ledger line as seen by its owner."""

    IN = "in"
    OUT = "out"

    @classmethod
    def parse(cls, raw: object) -> Direction:
        """Map any known export label onto IN/OUT. Raises ValueError otherwise."""
        key = str(raw).strip().lower() if raw is not None else ""
        try:
            return cls(_DIRECTION_ALIASES[key])
        except KeyError:
            raise ValueError(f"Unknown direction: {raw!r}") from None

    def flipped(self) -> Direction:
        return Direction.OUT if self is Direction.IN else Direction.IN


@dataclass(frozen=True)
class EntityId:
    """Account/card identifier as accepted at the HTTP boundary: 10-30 digits."""

    value: str

    def __post_init__(self) -> None:
        stripped = self.value.strip() if isinstance(self.value, str) else ""
        if not stripped:
            raise ValueError("Entity id cannot be empty")
        if not stripped.isdigit():
            raise ValueError("Entity id must contain digits only")
        if not 10 <= len(stripped) <= 30:
            raise ValueError(f"Invalid entity id: length {len(stripped)}, expected 10-30")
        object.__setattr__(self, "value", stripped)

    def __str__(self) -> str:
        return self.value


def parse_amount(raw: object) -> Decimal:
    """Lenient amount coercion: missing or unparseable values become zero."""
    if raw is None or isinstance(raw, bool):
        return Decimal("0")
    if isinstance(raw, Decimal):
        value = raw
    else:
        text = str(raw).strip().replace(",", "")
        if not text:
            return Decimal("0")
        try:
            value = Decimal(text)
        except InvalidOperation:
            return Decimal("0")
    if not value.is_finite():
        return Decimal("0")
    return value
