from pydantic import BaseModel, ConfigDict


class BaseSchema(BaseModel):
    """Base schema for all models."""
    model_config = ConfigDict(from_attributes=True)


class InputSchema(BaseModel):
    """Base schema for request bodies; strings are trimmed before length checks."""
    model_config = ConfigDict(str_strip_whitespace=True)
