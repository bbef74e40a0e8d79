"""
PIEM Backend — User Schemas
============================

What:  Create/update rule sets and the response model for users.
How:   Usernames are trimmed and HTML-escaped; emails are lower-cased and
       checked by pydantic's email-validator integration; role is user|admin.
"""

from typing import Annotated, Optional

from pydantic import AfterValidator, BeforeValidator, Field

from piem.schemas.common import CamelModel, DocumentOut
from piem.validation import choice_rule, clean_text, email_rule, length_rule, normalize_email


ROLES = ("user", "admin")

Username = Annotated[
    str,
    BeforeValidator(clean_text),
    AfterValidator(length_rule("Username", min_length=3)),
]
Email = Annotated[str, BeforeValidator(normalize_email), AfterValidator(email_rule("Invalid email format"))]
Role = Annotated[str, AfterValidator(choice_rule('Role must be either "user" or "admin"', ROLES))]


class UserCreate(CamelModel):
    username: Username = Field(description="Unique (case-insensitive) username")
    email: Email = Field(description="Unique (case-insensitive) email address")
    role: Role = Field(default="user")


class UserUpdate(CamelModel):
    username: Optional[Username] = None
    email: Optional[Email] = None
    role: Optional[Role] = None


class UserOut(DocumentOut):
    username: str
    email: str
    role: str = "user"
    github_id: Optional[str] = None
