from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class InputSchema:
    """Shallow view of a declared JSON Schema.

    Only the ``required`` list is enforced, and only for presence. Property
    types are documentation for callers and are never checked here.
    """

    required: tuple[str, ...] = ()

    @classmethod
    def from_declared(cls, declared: Any) -> "InputSchema":
        if not isinstance(declared, dict):
            return cls()
        required = declared.get("required") or []
        if not isinstance(required, list):
            required = []
        return cls(required=tuple(str(name) for name in required))


class MissingFieldError(ValueError):
    def __init__(self, field_name: str):
        super().__init__(f"Missing required field: {field_name}")
        self.field_name = field_name


def find_missing_field(schema: InputSchema, payload: Any) -> str | None:
    # Non-object payloads have no keys, so every required field is missing.
    keys = payload if isinstance(payload, dict) else {}
    for name in schema.required:
        if name not in keys:
            return name
    return None


def validate_payload(schema: InputSchema, payload: Any) -> None:
    missing = find_missing_field(schema, payload)
    if missing is not None:
        raise MissingFieldError(missing)
