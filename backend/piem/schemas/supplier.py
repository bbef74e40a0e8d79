"""
PIEM Backend — Supplier Schemas
================================

What:  Create/update rule sets and the response model for suppliers.
How:   Every contact field is required at creation and independently
       optional on update. Free text is trimmed and HTML-escaped; phone
       and zip code are trimmed and pattern-checked; email is lower-cased.
"""

from typing import Annotated, Optional

from pydantic import AfterValidator, BeforeValidator, Field

from piem.schemas.common import CamelModel, DocumentOut
from piem.validation import (
    clean_text,
    email_rule,
    length_rule,
    normalize_email,
    pattern_rule,
    strip_text,
)


SupplierName = Annotated[str, BeforeValidator(clean_text), AfterValidator(length_rule("Name", 2, 100))]
ContactName = Annotated[
    str, BeforeValidator(clean_text), AfterValidator(length_rule("Contact name", 2, 100))
]
ContactEmail = Annotated[
    str,
    BeforeValidator(normalize_email),
    AfterValidator(email_rule("Email must be a valid email address")),
]
Phone = Annotated[
    str,
    BeforeValidator(strip_text),
    AfterValidator(pattern_rule("Phone number format is invalid", r"[0-9\-\+\(\)\s]+")),
]
Address = Annotated[str, BeforeValidator(clean_text), AfterValidator(length_rule("Address", 5, 500))]
City = Annotated[str, BeforeValidator(clean_text), AfterValidator(length_rule("City", 2, 100))]
State = Annotated[str, BeforeValidator(clean_text), AfterValidator(length_rule("State", 2, 50))]
ZipCode = Annotated[
    str,
    BeforeValidator(strip_text),
    AfterValidator(pattern_rule("Zip code format is invalid", r"[A-Za-z0-9\- ]{3,10}")),
]


class SupplierCreate(CamelModel):
    name: SupplierName = Field(description="Unique (case-insensitive) supplier name")
    contact_name: ContactName
    email: ContactEmail
    phone: Phone
    address: Address
    city: City
    state: State
    zip_code: ZipCode


class SupplierUpdate(CamelModel):
    name: Optional[SupplierName] = None
    contact_name: Optional[ContactName] = None
    email: Optional[ContactEmail] = None
    phone: Optional[Phone] = None
    address: Optional[Address] = None
    city: Optional[City] = None
    state: Optional[State] = None
    zip_code: Optional[ZipCode] = None


class SupplierOut(DocumentOut):
    name: str
    contact_name: str
    email: str
    phone: str
    address: str
    city: str
    state: str
    zip_code: str
