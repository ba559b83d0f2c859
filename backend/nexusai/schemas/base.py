"""Base schema configuration."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class BaseSchema(BaseModel):
    """Base schema with common configuration.

    Attributes are snake_case in Python and camelCase on the wire.
    """

    model_config = ConfigDict(
        from_attributes=True,  # Enable ORM mode
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        validate_assignment=True,
    )

    def to_wire(self) -> dict:
        """Dump as JSON-compatible dict with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)


class MessageResponse(BaseModel):
    """Plain confirmation body, e.g. after a delete."""

    message: str


def reject_null(value):
    """Field validator for updates: a column that is never null may be omitted but not cleared."""
    if value is None:
        raise ValueError("field may be omitted but not set to null")
    return value
