"""
Order request model.

Captures what a customer typed into the order form, validates it against
the Queue Service's field constraints and builds the POST /orders body.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Any, List, Optional, Sequence

from .menu import DrinkMenuItem, find_menu_item


MIN_QUANTITY = 1
MAX_QUANTITY = 10


@dataclass(frozen=True)
class OrderRequest:
    """
    A customer's drink order before it reaches the Queue Service.

    Immutable so a request can be validated once and sent as-is.
    """

    customer_name: str
    customer_phone: str
    drink_id: Optional[int]
    quantity: int = 1
    customization_notes: Optional[str] = None
    emergency_flag: bool = False

    def field_errors(self, menu: Optional[Sequence[DrinkMenuItem]] = None) -> List[Dict[str, str]]:
        """
        Collect every field constraint violation.

        Args:
            menu: Menu to check drink_id against (skipped when None)

        Returns:
            List of {field, message} dicts, empty when valid
        """
        errors: List[Dict[str, str]] = []

        if not (self.customer_name or "").strip():
            errors.append({"field": "customerName", "message": "Name is required"})

        if not (self.customer_phone or "").strip():
            errors.append({"field": "customerPhone", "message": "Phone number is required"})

        if self.drink_id is None:
            errors.append({"field": "drinkId", "message": "Please select a drink"})
        elif menu is not None and find_menu_item(menu, self.drink_id) is None:
            errors.append({"field": "drinkId", "message": f"Unknown drink: {self.drink_id}"})

        if not isinstance(self.quantity, int) or isinstance(self.quantity, bool) \
                or not MIN_QUANTITY <= self.quantity <= MAX_QUANTITY:
            errors.append({
                "field": "quantity",
                "message": f"Quantity must be between {MIN_QUANTITY} and {MAX_QUANTITY}",
            })

        return errors

    def to_payload(self) -> Dict[str, Any]:
        """
        Build the POST /orders body.

        Strings are trimmed and customizationNotes is left out entirely
        (not sent as an empty string) when blank.
        """
        payload: Dict[str, Any] = {
            "customerName": self.customer_name.strip(),
            "customerPhone": self.customer_phone.strip(),
            "drinkId": int(self.drink_id),
            "quantity": int(self.quantity),
            "emergencyFlag": bool(self.emergency_flag),
        }
        notes = (self.customization_notes or "").strip()
        if notes:
            payload["customizationNotes"] = notes
        return payload
