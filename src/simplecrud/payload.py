"""
=============================================================================
USER PAYLOAD
=============================================================================

Typed view of a create/update request body, validated at the boundary.

    Raw JSON body                  UserPayload                 UserStore
    ─────────────                  ───────────                 ─────────
    {"name": "Ann",       ──►      name="Ann"          ──►     create(...)
     "email": "a@x.io",            email="a@x.io"              update(...)
     "age": "41"}                  age=41

Every field is optional at this layer. create() decides that all three
are required; update() uses whichever are present.

=============================================================================
FIELD RULES
=============================================================================

    name, email   text, or absent (missing / null / "")
    age           int, integral float (30.0), or integer text (" 41 ")
                  absent when missing / null / ""
                  anything else is refused: "Age must be a whole number"

Booleans are refused as ages even though bool is an int subclass.
=============================================================================
"""

from dataclasses import dataclass
from typing import Any, Optional
import re

from .errors import ValidationFailed


_INTEGER_TEXT = re.compile(r"\s*[-+]?[0-9]+\s*")

AGE_MESSAGE = "Age must be a whole number"
TEXT_MESSAGE = "Name and email must be text"


def coerce_age(value: Any) -> Optional[int]:
    """
    Normalize an age value to int.

    Args:
        value: The raw JSON value.

    Returns:
        The integer age, or None when the value counts as absent.

    Raises:
        ValidationFailed: The value is present but not a whole number.
    """
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValidationFailed(AGE_MESSAGE)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if value.is_integer():
            return int(value)
        raise ValidationFailed(AGE_MESSAGE)
    if isinstance(value, str) and _INTEGER_TEXT.fullmatch(value):
        try:
            return int(value)
        except ValueError:
            # Past int()'s digit limit
            raise ValidationFailed(AGE_MESSAGE) from None
    raise ValidationFailed(AGE_MESSAGE)


def _coerce_text(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise ValidationFailed(TEXT_MESSAGE)
    return value


@dataclass(frozen=True)
class UserPayload:
    """Optional name/email/age taken from a request body."""

    name: Optional[str] = None
    email: Optional[str] = None
    age: Optional[int] = None

    @classmethod
    def from_json(cls, data: Any) -> "UserPayload":
        """
        Build a payload from a decoded JSON body.

        A missing body or a body that is not a JSON object yields an
        empty payload; unknown keys are ignored.

        Raises:
            ValidationFailed: A field has the wrong type.
        """
        if not isinstance(data, dict):
            return cls()
        return cls(
            name=_coerce_text(data.get("name")),
            email=_coerce_text(data.get("email")),
            age=coerce_age(data.get("age")),
        )

    @property
    def is_complete(self) -> bool:
        """True when all three fields are present."""
        return None not in (self.name, self.email, self.age)

    def require_complete(self) -> "UserPayload":
        """Return self, or raise ValidationFailed if any field is absent."""
        if not self.is_complete:
            raise ValidationFailed()
        return self
