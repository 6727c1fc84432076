from pydantic import BaseModel, ConfigDict


class BaseSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class InputSchema(BaseModel):
    """Request payloads: accept field names and wire aliases, store enum values."""

    model_config = ConfigDict(
        populate_by_name=True,     # Allows origin="TLV" or from="TLV"
        use_enum_values=True,
        str_strip_whitespace=True,
    )
