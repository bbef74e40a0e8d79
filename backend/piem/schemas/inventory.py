"""
PIEM Backend — Inventory Item Schemas
======================================

What:  Create/update rule sets and the response model for inventory items.
How:   Text labels are trimmed and HTML-escaped; quantity must be an integer
       >= 0 and price a number >= 0; status is Available | Out of Stock.
       `category` and `supplier` are free labels, not references.
"""

from typing import Annotated, Optional

from pydantic import AfterValidator, BeforeValidator, Field

from piem.schemas.common import CamelModel, DocumentOut
from piem.validation import choice_rule, clean_text, length_rule, minimum_rule, numeric_rule


STATUSES = ("Available", "Out of Stock")

ItemName = Annotated[str, BeforeValidator(clean_text), AfterValidator(length_rule("Name", 2, 100))]
CategoryLabel = Annotated[
    str, BeforeValidator(clean_text), AfterValidator(length_rule("Category", 2, 100))
]
SupplierLabel = Annotated[
    str, BeforeValidator(clean_text), AfterValidator(length_rule("Supplier name", 2, 100))
]
ItemDescription = Annotated[
    str, BeforeValidator(clean_text), AfterValidator(length_rule("Description", max_length=500))
]
QUANTITY_MESSAGE = "Quantity must be a non-negative integer"
PRICE_MESSAGE = "Price must be a non-negative number"

Quantity = Annotated[
    int, BeforeValidator(numeric_rule(QUANTITY_MESSAGE)), AfterValidator(minimum_rule(QUANTITY_MESSAGE, 0))
]
Price = Annotated[
    float, BeforeValidator(numeric_rule(PRICE_MESSAGE)), AfterValidator(minimum_rule(PRICE_MESSAGE, 0))
]
Status = Annotated[
    str,
    BeforeValidator(clean_text),
    AfterValidator(choice_rule("Status must be one of Available or Out of Stock", STATUSES)),
]


class InventoryCreate(CamelModel):
    name: ItemName = Field(description="Unique (case-insensitive) item name")
    category: CategoryLabel
    quantity: Quantity
    description: Optional[ItemDescription] = None
    price: Price
    status: Status
    supplier: SupplierLabel


class InventoryUpdate(CamelModel):
    name: Optional[ItemName] = None
    category: Optional[CategoryLabel] = None
    quantity: Optional[Quantity] = None
    description: Optional[ItemDescription] = None
    price: Optional[Price] = None
    status: Optional[Status] = None
    supplier: Optional[SupplierLabel] = None


class InventoryOut(DocumentOut):
    name: str
    category: str
    quantity: int
    description: str = ""
    price: float
    status: str
    supplier: str
