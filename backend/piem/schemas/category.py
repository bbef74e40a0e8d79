"""
PIEM Backend — Category Schemas
================================

What:  Create/update rule sets and the response model for categories.
How:   Names and descriptions are trimmed and HTML-escaped before the
       length rules run. `createdBy`, `itemCount` and timestamps are
       server-managed and absent from the payload models. Responses embed
       the creator as `{_id, username, email}`.
"""

from typing import Annotated, Optional, Union

from pydantic import AfterValidator, BeforeValidator, Field

from piem.schemas.common import CamelModel, DocumentOut, ObjectIdStr
from piem.validation import boolean_rule, clean_text, length_rule


CategoryName = Annotated[
    str,
    BeforeValidator(clean_text),
    AfterValidator(length_rule("Name", 2, 50)),
]
CategoryDescription = Annotated[
    str,
    BeforeValidator(clean_text),
    AfterValidator(length_rule("Description", max_length=200)),
]
ActiveFlag = Annotated[bool, BeforeValidator(boolean_rule("isActive must be a boolean value"))]


class CategoryCreate(CamelModel):
    name: CategoryName = Field(description="Unique (case-insensitive) category name")
    description: Optional[CategoryDescription] = Field(default=None)


class CategoryUpdate(CamelModel):
    name: Optional[CategoryName] = None
    description: Optional[CategoryDescription] = None
    is_active: Optional[ActiveFlag] = Field(default=None, description="Active flag")


class CreatorOut(CamelModel):
    id: ObjectIdStr = Field(alias="_id")
    username: str
    email: str


class CategoryOut(DocumentOut):
    name: str
    description: str = ""
    created_by: Union[CreatorOut, ObjectIdStr] = Field(
        union_mode="left_to_right",
        description="Owning user (id only when the account no longer exists)"
    )
    item_count: int = 0
    is_active: bool = True
