"""Request/response schemas.

Every document kind has its own input model with explicit required and
optional fields.  Incoming bodies are validated against these models before
anything reaches the document store.
"""

from enum import Enum
from typing import Any
from typing import ClassVar
from typing import Dict
from typing import Optional
from typing import Type

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic import ValidationError as PydanticValidationError
from pydantic import field_validator

from herald.errors import ValidationError


def _strip(value: Any, *, blank_as_missing: bool = True) -> Any:
    if isinstance(value, str):
        value = value.strip()
        if not value and blank_as_missing:
            return None
    return value


class DocumentKind(str, Enum):
    PROFILE = "profile"
    SECTION = "section"
    POST = "post"
    VISITOR = "visitor"


# Collection names ----------------------------------------------------------

VISITORS = "visitors"
ENTRIES = "entries"
ADMIN = "admin"
SECTIONS = "sections"
POSTS = "posts"

PROFILE_ID = "profile"


class _Fields(BaseModel):
    model_config = ConfigDict(extra="ignore", str_max_length=20_000)

    # When set, an empty string counts as "not supplied".
    blank_as_missing: ClassVar[bool] = True

    @field_validator("*", mode="before")
    @classmethod
    def _normalise(cls, value: Any) -> Any:
        return _strip(value, blank_as_missing=cls.blank_as_missing)

    def document_fields(self) -> Dict[str, str]:
        """Only the fields the client actually supplied."""
        return self.model_dump(exclude_unset=True, exclude_none=True)


# Authentication -------------------------------------------------------------


class LoginIn(BaseModel):
    username: str
    password: str


class TokenOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    token: str
    token_type: str = "bearer"
    expires_in: int = Field(alias="expiresIn")


# Visitor entries ------------------------------------------------------------


class VisitorEntryIn(_Fields):
    name: str = Field(..., max_length=200)


class VisitorEntryOut(BaseModel):
    success: bool = True
    id: str


# Content --------------------------------------------------------------------


class ProfileIn(_Fields):
    """All profile fields are optional; writes merge into the stored document.

    An empty string is kept so a field can be cleared.
    """

    blank_as_missing: ClassVar[bool] = False

    name: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    text: Optional[str] = None


class SectionIn(_Fields):
    name: str
    title: Optional[str] = None
    description: Optional[str] = None


class PostIn(_Fields):
    title: str
    text: str
    description: Optional[str] = None
    author: Optional[str] = None
    section: Optional[str] = None


SCHEMAS: Dict[DocumentKind, Type[_Fields]] = {
    DocumentKind.PROFILE: ProfileIn,
    DocumentKind.SECTION: SectionIn,
    DocumentKind.POST: PostIn,
    DocumentKind.VISITOR: VisitorEntryIn,
}


def parse_fields(kind: DocumentKind, data: Dict[str, Any]) -> _Fields:
    """Validate *data* against the schema for *kind*.

    Raises :class:`herald.errors.ValidationError` naming the first offending
    field.
    """

    try:
        return SCHEMAS[kind].model_validate(data)
    except PydanticValidationError as exc:
        first = exc.errors()[0]
        field = ".".join(str(part) for part in first.get("loc", ())) or kind.value
        if first.get("type") == "missing" or first.get("input") is None:
            raise ValidationError(field, "must not be empty") from exc
        raise ValidationError(field, first.get("msg", "is invalid")) from exc
