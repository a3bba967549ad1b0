"""Input data model for the balance-reconstruction engine.

Accounts, transactions and stock items arrive from the persistence layer as
plain records. They are validated once, here, into immutable pydantic
models; every calculator downstream can then rely on the invariants below
instead of probing records for optional fields.

Invariants:
    - An account's stored balance magnitude is never negative and its
      direction is exactly ``Dr`` or ``Cr``.
    - Dates are canonical ``YYYY-MM-DD`` strings, so string comparison is
      chronological comparison.
    - Every transaction line is a tagged variant: ``kind="ledger"`` lines move
      money between accounts, ``kind="inventory"`` lines move stock.

Example:
    Validate a legacy voucher record::

        from ledgerbook.models import load_transactions

        [tx] = load_transactions([{
            "id": "v-1",
            "voucherNo": "1",
            "date": "2024-06-01",
            "type": "Payment",
            "rows": [
                {"type": "Dr", "account": "Rent", "debit": 500, "credit": 0},
                {"type": "Cr", "account": "Cash", "debit": 0, "credit": 500},
            ],
        }])
        assert tx.total_debit == tx.total_credit
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
import logging
from typing import Annotated, Any, Dict, Iterable, List, Literal, Optional, Sequence, Tuple, Union
import warnings

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, TypeAdapter, model_validator

from ._warnings import DataQualityWarning
from .decimal_utils import ZERO, to_decimal

logger = logging.getLogger(__name__)


class Direction(str, Enum):
    """Side of the ledger a balance or line sits on."""

    DEBIT = "Dr"
    CREDIT = "Cr"

    @property
    def sign(self) -> int:
        """+1 for debit, -1 for credit (the signed-balance convention)."""
        return 1 if self is Direction.DEBIT else -1

    @classmethod
    def of(cls, signed_value: Decimal) -> "Direction":
        """Direction label for a signed value; zero reads as debit."""
        return cls.DEBIT if signed_value >= ZERO else cls.CREDIT


class NaturalClass(str, Enum):
    """Natural class of an account group.

    Attributes:
        ASSETS: Resources held (debit normal balance)
        LIABILITIES: Obligations and capital (credit normal balance)
        INCOME: Sales and other income (credit normal balance)
        EXPENSES: Purchases and costs (debit normal balance)
    """

    ASSETS = "ASSETS"
    LIABILITIES = "LIABILITIES"
    INCOME = "INCOME"
    EXPENSES = "EXPENSES"

    @property
    def normal_direction(self) -> Direction:
        """Direction in which balances of this class conventionally grow."""
        if self in (NaturalClass.ASSETS, NaturalClass.EXPENSES):
            return Direction.DEBIT
        return Direction.CREDIT

    @property
    def is_debit_normal(self) -> bool:
        return self.normal_direction is Direction.DEBIT

    @property
    def is_balance_sheet(self) -> bool:
        """Stock accounts carry balances; flow accounts only carry movements."""
        return self in (NaturalClass.ASSETS, NaturalClass.LIABILITIES)

    def orient(self, signed_value: Decimal) -> Decimal:
        """Re-express a Dr-positive value as positive-in-natural-direction."""
        return signed_value if self.is_debit_normal else -signed_value


class StockMovement(str, Enum):
    """Direction of an inventory line."""

    INWARD = "inward"
    OUTWARD = "outward"

    @property
    def sign(self) -> int:
        return 1 if self is StockMovement.INWARD else -1


class LinePolicy(str, Enum):
    """How to treat a transaction with several lines against one account.

    Attributes:
        SUM: Every matching line contributes its delta.
        FIRST: Only the first matching line counts. This reproduces the
            legacy reports, which silently dropped the remaining lines.
    """

    SUM = "sum"
    FIRST = "first"


# Voucher types whose inventory allocations bring stock in or send it out.
INWARD_VOUCHER_TYPES = frozenset({"Purchase", "Receipt"})
OUTWARD_VOUCHER_TYPES = frozenset({"Sales", "Payment"})


def to_date_key(value: Union[str, date, datetime]) -> str:
    """Normalise a date to its canonical ``YYYY-MM-DD`` string.

    Args:
        value: A ``date``, ``datetime`` or ISO formatted string. Strings with a
            time component keep only the date part.

    Returns:
        The canonical, lexicographically sortable date string.

    Raises:
        ValueError: If the value is not a valid calendar date.
    """
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, str):
        text = value.strip()[:10]
        try:
            return date.fromisoformat(text).isoformat()
        except ValueError as e:
            raise ValueError(f"Invalid calendar date: {value!r}") from e
    raise ValueError(f"Expected a date or ISO date string, got {type(value).__name__}")


IsoDate = Annotated[str, BeforeValidator(to_date_key)]


class Account(BaseModel):
    """An account (ledger) master with its live balance.

    Attributes:
        name: Unique account name, used as the join key by transaction lines
        group: Name of the group the account belongs to
        category: Optional free-form sub-classification
        balance: Magnitude of the live balance (never negative)
        direction: Side of the live balance
    """

    model_config = ConfigDict(frozen=True, extra="ignore", coerce_numbers_to_str=True)

    name: str = Field(min_length=1)
    group: str
    category: Optional[str] = None
    balance: Decimal = Field(default=ZERO, ge=0)
    direction: Direction = Direction.DEBIT

    @model_validator(mode="before")
    @classmethod
    def _accept_legacy_layout(cls, data: Any) -> Any:
        # Legacy ledger records store the direction under "type"
        if isinstance(data, dict) and "direction" not in data and "type" in data:
            data = dict(data)
            data["direction"] = data.pop("type")
        return data

    @property
    def signed_balance(self) -> Decimal:
        """Live balance as one number, positive for debit."""
        return self.balance * self.direction.sign

    @classmethod
    def from_signed(
        cls,
        name: str,
        group: str,
        signed_balance: Union[Decimal, float, int, str],
        category: Optional[str] = None,
    ) -> "Account":
        """Build an account from a signed (Dr-positive) balance."""
        signed = to_decimal(signed_balance)
        return cls(
            name=name,
            group=group,
            category=category,
            balance=abs(signed),
            direction=Direction.of(signed),
        )


class LedgerLine(BaseModel):
    """A money line of a transaction.

    Attributes:
        account: Name of the account the line posts to
        direction: Debit or credit
        amount: Non-negative magnitude; the other side is implicitly zero
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    kind: Literal["ledger"] = "ledger"
    account: str
    direction: Direction
    amount: Decimal = Field(ge=0)

    @property
    def signed_amount(self) -> Decimal:
        """+amount for a debit line, -amount for a credit line."""
        return self.amount * self.direction.sign

    @property
    def debit(self) -> Decimal:
        return self.amount if self.direction is Direction.DEBIT else ZERO

    @property
    def credit(self) -> Decimal:
        return self.amount if self.direction is Direction.CREDIT else ZERO


class InventoryLine(BaseModel):
    """A stock allocation carried by a transaction.

    Attributes:
        item: Identifier of the stock item
        movement: Whether stock comes in or goes out
        quantity: Non-negative quantity moved
        rate: Per-unit rate recorded on the voucher
        amount: Recorded value of the movement (``quantity * rate`` if omitted)
    """

    model_config = ConfigDict(frozen=True, extra="ignore", coerce_numbers_to_str=True)

    kind: Literal["inventory"] = "inventory"
    item: str
    movement: StockMovement
    quantity: Decimal = Field(ge=0)
    rate: Decimal = Field(default=ZERO, ge=0)
    amount: Decimal = Field(default=ZERO, ge=0)

    @model_validator(mode="before")
    @classmethod
    def _fill_amount(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("amount") is None and "quantity" in data:
            data = dict(data)
            data["amount"] = to_decimal(data["quantity"]) * to_decimal(data.get("rate"))
        return data

    @property
    def signed_quantity(self) -> Decimal:
        return self.quantity * self.movement.sign

    @property
    def signed_amount(self) -> Decimal:
        return self.amount * self.movement.sign


Line = Annotated[Union[LedgerLine, InventoryLine], Field(discriminator="kind")]


def _legacy_rows_to_lines(voucher_type: str, voucher_id: Any, rows: Iterable[Dict]) -> List[Dict]:
    """Translate legacy voucher rows into tagged line records."""
    lines: List[Dict] = []
    for row in rows:
        account = row.get("account") or ""
        if account:
            row_type = row.get("type", "Dr")
            amount = row.get("debit") if row_type == "Dr" else row.get("credit")
            lines.append(
                {
                    "kind": "ledger",
                    "account": account,
                    "direction": row_type,
                    "amount": amount if amount is not None else 0,
                }
            )
        for allocation in row.get("inventoryAllocations") or ():
            if voucher_type in INWARD_VOUCHER_TYPES:
                movement = StockMovement.INWARD
            elif voucher_type in OUTWARD_VOUCHER_TYPES:
                movement = StockMovement.OUTWARD
            else:
                warnings.warn(
                    f"Voucher {voucher_id}: inventory allocation on a '{voucher_type}' "
                    f"voucher has no stock direction and was ignored",
                    DataQualityWarning,
                    stacklevel=2,
                )
                continue
            lines.append(
                {
                    "kind": "inventory",
                    "item": allocation.get("itemId") or allocation.get("item"),
                    "movement": movement,
                    "quantity": allocation.get("quantity", 0),
                    "rate": allocation.get("rate", 0),
                    "amount": allocation.get("amount"),
                }
            )
    return lines


class Transaction(BaseModel):
    """A double-entry transaction (voucher).

    Debits are not required to equal credits here; that is checked, when
    wanted, by :func:`ledgerbook.integrity.find_unbalanced_transactions`.

    Attributes:
        id: Unique transaction identifier
        number: Voucher number shown on statements
        date: Canonical ``YYYY-MM-DD`` date
        type: Voucher type tag (Sales, Purchase, Payment, ...)
        narration: Free-form description
        lines: Ordered money and inventory lines
    """

    model_config = ConfigDict(frozen=True, extra="ignore", coerce_numbers_to_str=True)

    id: str
    number: str = ""
    date: IsoDate
    type: str = ""
    narration: str = ""
    lines: Tuple[Line, ...] = ()

    @model_validator(mode="before")
    @classmethod
    def _accept_legacy_layout(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        if "number" not in data and "voucherNo" in data:
            data["number"] = data.pop("voucherNo")
        if "lines" not in data and "rows" in data:
            data["lines"] = _legacy_rows_to_lines(
                data.get("type", ""), data.get("id"), data.pop("rows") or ()
            )
        elif "lines" in data:
            # Untagged line records: infer the variant from the fields present
            data["lines"] = [
                dict(line, kind="inventory" if "item" in line else "ledger")
                if isinstance(line, dict) and "kind" not in line
                else line
                for line in data["lines"] or ()
            ]
        return data

    def ledger_lines(self) -> Tuple[LedgerLine, ...]:
        return tuple(line for line in self.lines if isinstance(line, LedgerLine))

    def inventory_lines(self) -> Tuple[InventoryLine, ...]:
        return tuple(line for line in self.lines if isinstance(line, InventoryLine))

    def accounts(self) -> Tuple[str, ...]:
        """Distinct account names referenced, in line order."""
        seen: Dict[str, None] = {}
        for line in self.ledger_lines():
            seen.setdefault(line.account, None)
        return tuple(seen)

    def items(self) -> Tuple[str, ...]:
        """Distinct stock item identifiers referenced, in line order."""
        seen: Dict[str, None] = {}
        for line in self.inventory_lines():
            seen.setdefault(line.item, None)
        return tuple(seen)

    def references(self, account: str) -> bool:
        return any(line.account == account for line in self.ledger_lines())

    @property
    def total_debit(self) -> Decimal:
        return sum((line.debit for line in self.ledger_lines()), ZERO)

    @property
    def total_credit(self) -> Decimal:
        return sum((line.credit for line in self.ledger_lines()), ZERO)

    @property
    def is_balanced(self) -> bool:
        return self.total_debit == self.total_credit


class StockItem(BaseModel):
    """An inventory master with its live quantity and value.

    Stored item masters usually carry only the opening figures; the live
    figures are then absent and are derived from the inventory lines.

    Attributes:
        id: Identifier referenced by inventory lines (defaults to ``name``)
        name: Display name
        group: Optional stock group
        unit: Optional unit of measure
        opening_quantity: Quantity entered on the master
        opening_value: Value entered on the master
        current_quantity: Live quantity, ``None`` when never written
        current_value: Live value, ``None`` when never written
    """

    model_config = ConfigDict(frozen=True, extra="ignore", coerce_numbers_to_str=True)

    id: str = ""
    name: str = Field(min_length=1)
    group: Optional[str] = None
    unit: Optional[str] = None
    opening_quantity: Decimal = ZERO
    opening_value: Decimal = ZERO
    current_quantity: Optional[Decimal] = None
    current_value: Optional[Decimal] = None

    @model_validator(mode="before")
    @classmethod
    def _accept_legacy_layout(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        renames = {
            "openingStock": "opening_quantity",
            "openingValue": "opening_value",
            "currentBalance": "current_quantity",
            "currentValue": "current_value",
            "groupId": "group",
            "unitId": "unit",
        }
        for legacy, field_name in renames.items():
            if legacy in data and field_name not in data:
                data[field_name] = data.pop(legacy)
        if not data.get("id"):
            data["id"] = data.get("name", "")
        return data


_ACCOUNTS_ADAPTER = TypeAdapter(List[Account])
_TRANSACTIONS_ADAPTER = TypeAdapter(List[Transaction])
_STOCK_ITEMS_ADAPTER = TypeAdapter(List[StockItem])


def load_accounts(records: Sequence[Any]) -> List[Account]:
    """Validate account records at the engine boundary.

    Args:
        records: Account instances or plain records (new or legacy layout).

    Returns:
        Validated accounts, in input order.

    Raises:
        pydantic.ValidationError: If a record violates the data model.
        ValueError: If two accounts share a name.
    """
    accounts = _ACCOUNTS_ADAPTER.validate_python(list(records))
    seen: set = set()
    duplicates = []
    for account in accounts:
        if account.name in seen:
            duplicates.append(account.name)
        seen.add(account.name)
    if duplicates:
        raise ValueError(f"Account names must be unique; duplicated: {sorted(set(duplicates))}")
    logger.debug("Loaded %d accounts", len(accounts))
    return accounts


def load_transactions(records: Sequence[Any]) -> List[Transaction]:
    """Validate transaction records at the engine boundary.

    Raises:
        pydantic.ValidationError: If a record violates the data model.
    """
    transactions = _TRANSACTIONS_ADAPTER.validate_python(list(records))
    logger.debug("Loaded %d transactions", len(transactions))
    return transactions


def load_stock_items(records: Sequence[Any]) -> List[StockItem]:
    """Validate stock item records at the engine boundary.

    Raises:
        pydantic.ValidationError: If a record violates the data model.
    """
    items = _STOCK_ITEMS_ADAPTER.validate_python(list(records))
    logger.debug("Loaded %d stock items", len(items))
    return items
