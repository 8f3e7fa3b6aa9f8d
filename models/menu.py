"""
Drink menu models.

The menu is read-only reference data. When the Queue Service has no menu
endpoint (or it fails), the client substitutes FALLBACK_MENU so order
placement is never blocked.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Any, List, Optional, Sequence


@dataclass(frozen=True)
class DrinkMenuItem:
    """A drink that can be ordered."""

    id: int
    name: str

    prep_time: int
    """Preparation time in minutes."""

    price: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "prepTime": self.prep_time,
            "price": self.price,
        }

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "DrinkMenuItem":
        """
        Create a menu item from a Queue Service payload.

        Raises:
            KeyError: If ``id`` or ``name`` is missing
            TypeError: If ``data`` is not a mapping
        """
        if not isinstance(data, dict):
            raise TypeError(f"Drink payload must be an object, got {type(data).__name__}")
        return cls(
            id=int(data["id"]),
            name=str(data["name"]),
            prep_time=int(data.get("prepTime") or 0),
            price=float(data.get("price") or 0),
        )


# Default catalog used when GET /drinks is unavailable.
# Pure default-value policy: these prep times carry no wait-time semantics.
FALLBACK_MENU: List[DrinkMenuItem] = [
    DrinkMenuItem(id=1, name="Espresso", prep_time=2, price=3.50),
    DrinkMenuItem(id=2, name="Cappuccino", prep_time=3, price=4.50),
    DrinkMenuItem(id=3, name="Latte", prep_time=3, price=4.50),
    DrinkMenuItem(id=4, name="Americano", prep_time=2, price=3.50),
    DrinkMenuItem(id=5, name="Mocha", prep_time=4, price=5.00),
    DrinkMenuItem(id=6, name="Macchiato", prep_time=3, price=4.00),
    DrinkMenuItem(id=7, name="Flat White", prep_time=3, price=4.50),
    DrinkMenuItem(id=8, name="Cold Brew", prep_time=2, price=4.00),
    DrinkMenuItem(id=9, name="Iced Latte", prep_time=3, price=4.75),
    DrinkMenuItem(id=10, name="Frappuccino", prep_time=5, price=5.50),
    DrinkMenuItem(id=11, name="Hot Chocolate", prep_time=3, price=4.00),
    DrinkMenuItem(id=12, name="Chai Latte", prep_time=3, price=4.25),
]


def find_menu_item(menu: Sequence[DrinkMenuItem], drink_id: int) -> Optional[DrinkMenuItem]:
    """Find a menu item by id, or None."""
    for item in menu:
        if item.id == drink_id:
            return item
    return None
