from typing import Any

from pydantic import BaseModel, ConfigDict, StrictStr, field_validator

from qrgen.errors import ValidationError


class GenerateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    text: StrictStr

    @field_validator("text")
    @classmethod
    def _strip_and_require(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("text must not be empty")
        try:
            value.encode("utf-8")
        except UnicodeEncodeError as exc:
            raise ValueError("text must be valid unicode") from exc
        return value


def parse_generate_request(payload: Any) -> GenerateRequest:
    """Validate a decoded JSON body; any other shape is a 400."""
    if not isinstance(payload, dict):
        raise ValidationError()
    try:
        return GenerateRequest.model_validate(payload)
    except ValueError as exc:
        raise ValidationError() from exc
