"""
Cart Module - Ledger
======================
In-memory cart reducer: the same rules the storefront applies to a guest's
local cart, reused server-side to persist and merge carts on sign-in.

Invariant: a line whose quantity drops to zero or below is removed, never kept.
"""

from dataclasses import dataclass, asdict, replace
from decimal import Decimal
from typing import Iterable, List, Optional

from common.helpers import to_decimal
from modules.pricing.calculator import calculate_order_total


@dataclass
class CartLine:
    id: int
    name: str
    price: Decimal
    quantity: int
    image: Optional[str] = None
    shipping_charges: Decimal = Decimal("0")
    cod_available: bool = False

    @classmethod
    def normalize(cls, **data) -> "CartLine":
        """Coerce loosely typed input (e.g. a JSON body) into a line."""
        shipping = to_decimal(data.get("shipping_charges"))
        return cls(
            id=data["id"],
            name=data.get("name") or "",
            price=to_decimal(data.get("price")),
            quantity=int(data.get("quantity") or 0),
            image=data.get("image"),
            shipping_charges=shipping if shipping > 0 else Decimal("0"),
            cod_available=bool(data.get("cod_available")),
        )

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity

    def to_dict(self) -> dict:
        return asdict(self)


class CartLedger:

    def __init__(self, lines: Iterable[CartLine] = ()):
        self._lines: List[CartLine] = []
        self.load(lines)

    @property
    def lines(self) -> List[CartLine]:
        return list(self._lines)

    def __len__(self):
        return len(self._lines)

    def find(self, line_id) -> Optional[CartLine]:
        for line in self._lines:
            if line.id == line_id:
                return line
        return None

    # ------------------------------------------
    # Reducer operations
    # ------------------------------------------

    def add(self, line: CartLine) -> None:
        """Add a line, or merge it into an existing line with the same id."""
        if line.quantity <= 0:
            return
        existing = self.find(line.id)
        if existing is None:
            self._lines.append(replace(line))
            return
        # Quantity changed: take the fresh product data along with it
        existing.quantity += line.quantity
        existing.price = line.price
        existing.name = line.name or existing.name
        existing.image = line.image or existing.image
        existing.shipping_charges = line.shipping_charges
        existing.cod_available = line.cod_available

    def update_quantity(self, line_id, quantity: int) -> None:
        line = self.find(line_id)
        if line is None:
            return
        if quantity <= 0:
            self.remove(line_id)
        else:
            line.quantity = quantity

    def remove(self, line_id) -> None:
        self._lines = [line for line in self._lines if line.id != line_id]

    def clear(self) -> None:
        self._lines = []

    def load(self, lines: Iterable[CartLine]) -> None:
        """Replace the contents. Repeated ids fold into one line."""
        self._lines = []
        for line in lines:
            self.add(line)

    def merge(self, lines: Iterable[CartLine]) -> None:
        """Sign-in merge: fold a guest cart into this one."""
        for line in lines:
            self.add(line)

    # ------------------------------------------
    # Totals
    # ------------------------------------------

    def subtotal(self) -> Decimal:
        return sum((line.line_total for line in self._lines), Decimal("0"))

    def shipping_total(self) -> Decimal:
        return sum((line.shipping_charges for line in self._lines), Decimal("0"))

    def count(self) -> int:
        return sum(line.quantity for line in self._lines)

    def all_items_support_cod(self) -> bool:
        if not self._lines:
            return False
        return all(line.cod_available for line in self._lines)

    def totals(self, coupon=None) -> dict:
        return calculate_order_total(self._lines, coupon)
