"""Stock quantity and value reconstruction.

Stock items keep only a live quantity and value, exactly like accounts keep
a live balance. Closing stock as of a past date is therefore recovered the
same way: undo every inventory line dated after the date. Item masters that
never had their live figures written are rolled forward from the opening
stock instead.

Closing value for a period uses the weighted average cost of everything
available in the period (opening plus inwards), so outward lines recorded at
selling price do not leak margin into the stock valuation.
"""

from dataclasses import dataclass, field
from decimal import Decimal
import logging
from typing import Callable, Iterable, List, Optional, Tuple, Union

from .decimal_utils import ZERO, quantize_currency, safe_divide
from .models import InventoryLine, StockItem, StockMovement, Transaction, to_date_key
from .reconstruction import DateLike, TransactionIndex
from .statement import DEFAULT_PARTICULARS

logger = logging.getLogger(__name__)

StockSource = Union[Iterable[Transaction], TransactionIndex]


@dataclass(frozen=True)
class StockPosition:
    """Stock summary line of one item for a period.

    Attributes:
        item_id: Stock item identifier
        item_name: Stock item name
        unit: Unit of measure, if any
        opening_quantity: Quantity just before the period
        opening_value: Value just before the period
        inward_quantity: Quantity received in the period
        inward_value: Recorded value of receipts
        outward_quantity: Quantity issued in the period
        outward_value: Recorded value of issues (as invoiced)
        closing_quantity: Quantity at the end of the period
        closing_value: Closing quantity valued at weighted average cost
    """

    item_id: str
    item_name: str
    unit: Optional[str]
    opening_quantity: Decimal
    opening_value: Decimal
    inward_quantity: Decimal
    inward_value: Decimal
    outward_quantity: Decimal
    outward_value: Decimal
    closing_quantity: Decimal
    closing_value: Decimal

    @property
    def has_activity(self) -> bool:
        return any(
            q != ZERO for q in (self.opening_quantity, self.inward_quantity, self.outward_quantity)
        )


@dataclass(frozen=True)
class StockRegisterRow:
    """One inventory line on an item's stock register."""

    date: str
    transaction_id: str
    number: str
    transaction_type: str
    particulars: str
    inward_quantity: Decimal
    outward_quantity: Decimal
    running_quantity: Decimal
    rate: Decimal
    value: Decimal


@dataclass
class StockRegister:
    """Stock register of one item for a date range."""

    item_id: str
    start_date: str
    end_date: str
    opening_quantity: Decimal
    rows: List[StockRegisterRow] = field(default_factory=list)
    total_inward: Decimal = ZERO
    total_outward: Decimal = ZERO

    @property
    def closing_quantity(self) -> Decimal:
        return self.opening_quantity + self.total_inward - self.total_outward


def _item_lines(
    transactions: StockSource, item_id: str
) -> Iterable[Tuple[Transaction, InventoryLine]]:
    source = transactions.for_item(item_id) if isinstance(transactions, TransactionIndex) else transactions
    for transaction in source:
        for line in transaction.inventory_lines():
            if line.item == item_id:
                yield transaction, line


class StockValuationReconciler:
    """Reconstructs stock quantities and values without stored snapshots.

    Attributes:
        currency_places: Decimal places used for derived values
    """

    def __init__(self, currency_places: int = 2) -> None:
        self.currency_places = currency_places

    def _figures(
        self,
        item: StockItem,
        transactions: StockSource,
        after: Callable[[str], bool],
    ) -> Tuple[Decimal, Decimal]:
        """Quantity and value leaving out the lines whose date satisfies ``after``.

        Live figures are walked back by undoing the later lines. Masters that
        never stored live figures are rolled forward from the opening figures
        through the earlier lines instead.
        """
        roll_quantity = item.current_quantity is None
        roll_value = item.current_value is None
        quantity = item.opening_quantity if roll_quantity else item.current_quantity
        value = item.opening_value if roll_value else item.current_value
        for transaction, line in _item_lines(transactions, item.id):
            if after(transaction.date):
                if not roll_quantity:
                    quantity -= line.signed_quantity
                if not roll_value:
                    value -= line.signed_amount
            else:
                if roll_quantity:
                    quantity += line.signed_quantity
                if roll_value:
                    value += line.signed_amount
        return quantity, value

    def quantity_as_of(
        self, item: StockItem, transactions: StockSource, as_on_date: DateLike
    ) -> Decimal:
        """Quantity in hand at the end of ``as_on_date``.

        Inventory lines dated on ``as_on_date`` are included, matching the
        same-day rule for account balances.
        """
        cutoff = to_date_key(as_on_date)
        return self._figures(item, transactions, lambda d: d > cutoff)[0]

    def value_as_of(
        self, item: StockItem, transactions: StockSource, as_on_date: DateLike
    ) -> Decimal:
        """Recorded stock value at the end of ``as_on_date``."""
        cutoff = to_date_key(as_on_date)
        return self._figures(item, transactions, lambda d: d > cutoff)[1]

    def position(
        self,
        item: StockItem,
        transactions: StockSource,
        start_date: Optional[DateLike],
        end_date: DateLike,
    ) -> StockPosition:
        """Opening, inward, outward and closing stock of an item.

        Args:
            item: Stock item with its live quantity and value.
            transactions: Transactions (or an index) carrying inventory lines.
            start_date: First date of the period (inclusive), or ``None`` to
                value from the beginning of the books.
            end_date: Last date of the period (inclusive).
        """
        # An empty key sorts before every date
        start = to_date_key(start_date) if start_date is not None else ""
        end = to_date_key(end_date)
        opening_qty, opening_val = self._figures(item, transactions, lambda d: d >= start)

        inward_qty = inward_val = outward_qty = outward_val = ZERO
        for transaction, line in _item_lines(transactions, item.id):
            if not start <= transaction.date <= end:
                continue
            if line.movement is StockMovement.INWARD:
                inward_qty += line.quantity
                inward_val += line.amount
            else:
                outward_qty += line.quantity
                outward_val += line.amount

        available_qty = opening_qty + inward_qty
        available_val = opening_val + inward_val
        # Negative availability (oversold stock) has no meaningful cost
        average_rate = (
            safe_divide(available_val, available_qty, default=ZERO) if available_qty > ZERO else ZERO
        )
        closing_value = quantize_currency(
            available_val - outward_qty * average_rate, self.currency_places
        )

        return StockPosition(
            item_id=item.id,
            item_name=item.name,
            unit=item.unit,
            opening_quantity=opening_qty,
            opening_value=opening_val,
            inward_quantity=inward_qty,
            inward_value=inward_val,
            outward_quantity=outward_qty,
            outward_value=outward_val,
            closing_quantity=available_qty - outward_qty,
            closing_value=closing_value,
        )

    def closing_stock_value(
        self,
        items: Iterable[StockItem],
        transactions: StockSource,
        start_date: Optional[DateLike],
        end_date: DateLike,
    ) -> Decimal:
        """Total closing value of all items at weighted average cost.

        Equals the closing total of the stock summary for the same dates.
        """
        if not isinstance(transactions, TransactionIndex):
            transactions = TransactionIndex(transactions)
        return sum(
            (self.position(item, transactions, start_date, end_date).closing_value for item in items),
            ZERO,
        )

    def register(
        self,
        item: StockItem,
        transactions: StockSource,
        start_date: DateLike,
        end_date: DateLike,
    ) -> StockRegister:
        """Stock register of an item with a running quantity.

        Rows follow date order; lines of one transaction keep their order.
        """
        start = to_date_key(start_date)
        end = to_date_key(end_date)
        transactions = list(
            transactions.for_item(item.id) if isinstance(transactions, TransactionIndex) else transactions
        )
        opening_qty, _ = self._figures(item, transactions, lambda d: d >= start)

        register = StockRegister(
            item_id=item.id, start_date=start, end_date=end, opening_quantity=opening_qty
        )
        running = opening_qty
        in_period = sorted(
            ((tx, line) for tx, line in _item_lines(transactions, item.id) if start <= tx.date <= end),
            key=lambda pair: pair[0].date,
        )
        for transaction, line in in_period:
            inward = line.quantity if line.movement is StockMovement.INWARD else ZERO
            outward = line.quantity if line.movement is StockMovement.OUTWARD else ZERO
            running += inward - outward
            ledger_lines = transaction.ledger_lines()
            register.rows.append(
                StockRegisterRow(
                    date=transaction.date,
                    transaction_id=transaction.id,
                    number=transaction.number,
                    transaction_type=transaction.type,
                    particulars=ledger_lines[0].account if ledger_lines else DEFAULT_PARTICULARS,
                    inward_quantity=inward,
                    outward_quantity=outward,
                    running_quantity=running,
                    rate=line.rate,
                    value=line.amount,
                )
            )
            register.total_inward += inward
            register.total_outward += outward

        logger.debug("Stock register for %r: %d rows", item.id, len(register.rows))
        return register
