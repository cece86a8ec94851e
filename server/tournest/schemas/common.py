"""Common Pydantic schemas and the success envelope."""

from typing import Annotated, Any, Optional

from fastapi.responses import JSONResponse
from pydantic import BaseModel, BeforeValidator, ConfigDict, Field
from pydantic.alias_generators import to_camel

# ObjectId (or anything else) rendered as its string form
PyObjectId = Annotated[str, BeforeValidator(str)]


class DocumentModel(BaseModel):
    """Base for schemas whose wire and storage form uses camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        use_enum_values=True,
    )

    def to_json(self) -> dict[str, Any]:
        """JSON-safe dict with wire keys, omitting fields absent from the source document."""
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True)


class Violation(BaseModel):
    """Validation error violation."""

    path: str = Field(..., description="Dotted path to the invalid field")
    message: str = Field(..., description="Validation error message")


class Envelope(BaseModel):
    """Success response envelope."""

    status: str = Field("success", description="Always 'success' for 2xx responses")
    message: Optional[str] = Field(None, description="Optional human-readable note")
    results: Optional[int] = Field(None, description="Number of items in a list response")
    data: Any = Field(None, description="Response payload")


def envelope(
    data: Any,
    status_code: int = 200,
    results: Optional[int] = None,
    message: Optional[str] = None,
) -> JSONResponse:
    """
    Wrap ``data`` in the success envelope.

    Args:
        data: JSON-safe payload
        status_code: HTTP status code
        results: Item count for list responses
        message: Optional note for the client
    """
    body = Envelope(data=data, results=results, message=message)
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(exclude_none=True) | {"data": data},
    )
