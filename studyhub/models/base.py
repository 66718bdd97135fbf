"""Shared pydantic base for API payloads (camelCase on the wire)."""

from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from studyhub.errors import ValidationError, validation_message


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


ModelT = TypeVar("ModelT", bound=ApiModel)


def parse_body(model: type[ModelT], payload: Any) -> ModelT:
    """Validate a raw JSON body; handlers call this after their auth checks."""
    try:
        return model.model_validate(payload)
    except PydanticValidationError as e:
        raise ValidationError(validation_message(e.errors())) from e
