"""Shared model config and base types."""
from typing import Annotated, Any, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict


class LFBaseModel(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)


def _as_text(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


def _blank_to_none(value: Any) -> Any:
    # Extracts write missing values as empty cells or the literal "null"
    if isinstance(value, str) and value.strip().lower() in ("", "null"):
        return None
    return value


def _optional_text(value: Any) -> Any:
    if value is None:
        return None
    return _blank_to_none(_as_text(value))


Text = Annotated[str, BeforeValidator(_as_text)]
OptionalText = Annotated[Optional[str], BeforeValidator(_optional_text)]
OptionalInt = Annotated[Optional[int], BeforeValidator(_blank_to_none)]


def _blank_to_zero(value: Any) -> Any:
    value = _blank_to_none(value)
    return 0 if value is None else value


def _blank_to_false(value: Any) -> Any:
    value = _blank_to_none(value)
    return False if value is None else value


Count = Annotated[int, BeforeValidator(_blank_to_zero)]
Flag = Annotated[bool, BeforeValidator(_blank_to_false)]
OptionalFlag = Annotated[Optional[bool], BeforeValidator(_blank_to_none)]
