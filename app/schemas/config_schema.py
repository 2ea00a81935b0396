"""
Configuration schema field variants.

A catalog entry's ``configSchema`` maps a setting name to one of these
descriptors. Each variant knows how to validate a single value; the module
level helpers apply a whole schema to a configuration payload.
"""

import re
from typing import Annotated, Any, Literal, Optional, Union
from pydantic import BaseModel, Field, TypeAdapter


def field_label(name: str) -> str:
    """Human label for a camelCase setting name, e.g. ``webhookSecret`` -> ``Webhook Secret``."""
    spaced = re.sub(r"([A-Z])", r" \1", name)
    return (spaced[:1].upper() + spaced[1:]).strip()


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


class _BaseField(BaseModel):
    required: bool = False
    description: Optional[str] = None

    def validate_value(self, name: str, value: Any) -> Optional[str]:
        if _is_blank(value):
            return f"{field_label(name)} is required" if self.required else None
        return self._check_type(name, value)

    def _check_type(self, name: str, value: Any) -> Optional[str]:
        raise NotImplementedError


class StringField(_BaseField):
    type: Literal["string"] = "string"
    default: Optional[str] = None
    secret: bool = False
    placeholder: Optional[str] = None

    def _check_type(self, name: str, value: Any) -> Optional[str]:
        if not isinstance(value, str):
            return f"{field_label(name)} must be a string"
        return None


class NumberField(_BaseField):
    type: Literal["number"] = "number"
    default: Optional[float] = None
    placeholder: Optional[str] = None

    def _check_type(self, name: str, value: Any) -> Optional[str]:
        # bool is an int subclass
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return f"{field_label(name)} must be a number"
        return None


class BooleanField(_BaseField):
    type: Literal["boolean"] = "boolean"
    default: Optional[bool] = None

    def _check_type(self, name: str, value: Any) -> Optional[str]:
        if not isinstance(value, bool):
            return f"{field_label(name)} must be true or false"
        return None


ConfigField = Annotated[Union[StringField, NumberField, BooleanField], Field(discriminator="type")]
ConfigSchema = dict[str, ConfigField]


def apply_defaults(schema: Optional[ConfigSchema], configuration: Optional[dict[str, Any]]) -> dict[str, Any]:
    result = dict(configuration or {})
    for name, field in (schema or {}).items():
        if name not in result and field.default is not None:
            result[name] = field.default
    return result


def validate_configuration(schema: Optional[ConfigSchema], configuration: Optional[dict[str, Any]]) -> list[str]:
    """Return one message per invalid setting. Keys absent from the schema are ignored."""
    configuration = configuration or {}
    errors = []
    for name, field in (schema or {}).items():
        error = field.validate_value(name, configuration.get(name))
        if error:
            errors.append(error)
    return errors


_schema_adapter = TypeAdapter(ConfigSchema)


def parse_schema(raw: Optional[dict[str, Any]]) -> ConfigSchema:
    """Parse a stored ``configSchema`` mapping into field variants."""
    return _schema_adapter.validate_python(raw or {})
