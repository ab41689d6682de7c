"""Search model."""

from typing import Any, Dict, List, Literal, Optional, Set

import orjson
from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
)

from stac_fastapi.cmr.exceptions import TranslationError
from stac_fastapi.cmr.extensions.fields import parse_fields
from stac_fastapi.cmr.extensions.sort import parse_sortby

# CMR refuses larger pages.
MAX_PAGE_SIZE = 2000


class FieldsSpec(BaseModel):
    """Canonical fields extension value."""

    include: Set[str] = Field(default_factory=set)
    exclude: Set[str] = Field(default_factory=set)


class SortSpec(BaseModel):
    """Canonical sort extension value."""

    model_config = ConfigDict(populate_by_name=True)

    field: str = Field(validation_alias=AliasChoices("field", "property"))
    direction: Literal["asc", "desc"] = "asc"


def _split_csv(value: Any) -> Any:
    if isinstance(value, str):
        value = [value]
    if isinstance(value, (list, tuple)):
        return [
            part.strip()
            for v in value
            for part in str(v).split(",")
            if part.strip()
        ]
    return value


class SearchParams(BaseModel):
    """STAC search parameters.

    The recognized STAC parameters are typed; any other parameter is kept as
    an extra attribute and only forwarded to CMR when its name is a known CMR
    parameter.
    """

    model_config = ConfigDict(extra="allow")

    bbox: Optional[List[float]] = None
    datetime: Optional[str] = None
    intersects: Optional[Dict[str, Any]] = None
    collections: Optional[List[str]] = None
    ids: Optional[List[str]] = None
    limit: Optional[int] = Field(default=None, ge=1, le=MAX_PAGE_SIZE)
    page: Optional[int] = Field(default=None, ge=1)
    query: Optional[Dict[str, Dict[str, Any]]] = None
    sortby: Optional[List[SortSpec]] = None
    fields: Optional[FieldsSpec] = None

    @classmethod
    def parse(cls, raw: Dict[str, Any]) -> "SearchParams":
        """Validate raw GET or POST parameters.

        Raises:
            TranslationError: If any parameter has the wrong shape.
        """
        try:
            return cls.model_validate(raw or {})
        except ValidationError as e:
            raise TranslationError(f"Invalid parameters provided: {e}")

    @field_validator("bbox", mode="before")
    @classmethod
    def validate_bbox(cls, v):
        """Accept `w,s,e,n` strings and 4 or 6 number arrays."""
        if v is None:
            return v
        values = _split_csv(v)
        if len(values) not in (4, 6):
            raise ValueError("bbox must have 4 or 6 values")
        return values

    @field_validator("collections", "ids", mode="before")
    @classmethod
    def validate_id_lists(cls, v):
        """Accept comma separated or repeated values."""
        return _split_csv(v) if v is not None else v

    @field_validator("intersects", "query", mode="before")
    @classmethod
    def validate_json(cls, v):
        """GET requests send these as JSON strings."""
        if isinstance(v, list) and len(v) == 1:
            v = v[0]
        if isinstance(v, (str, bytes)):
            return orjson.loads(v)
        return v

    @field_validator("datetime", "limit", "page", mode="before")
    @classmethod
    def validate_single(cls, v):
        """Collapse a repeated GET parameter to its last value."""
        if isinstance(v, list):
            return v[-1] if v else None
        return v

    @field_validator("sortby", mode="before")
    @classmethod
    def validate_sortby(cls, v):
        """Normalize both sortby syntaxes."""
        if v is None:
            return v
        try:
            return parse_sortby(v)
        except TranslationError as e:
            raise ValueError(str(e))

    @field_validator("fields", mode="before")
    @classmethod
    def validate_fields(cls, v):
        """Normalize both fields syntaxes."""
        if v is None or isinstance(v, FieldsSpec):
            return v
        return parse_fields(v)

    @property
    def extension_params(self) -> Dict[str, Any]:
        """Parameters outside the recognized STAC set."""
        return dict(self.model_extra or {})

    def echo(self) -> Dict[str, Any]:
        """The parameters as they were understood, for the context extension."""
        return self.model_dump(mode="json", exclude_none=True)
