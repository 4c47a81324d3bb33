"""OAuth ``state`` value carried through the provider round trip.

The state holds the encrypted identity and the issuance time. It is encoded
as unpadded base64url of compact JSON so it survives the provider's redirect
unchanged, and only this package ever decodes it.
"""

from __future__ import annotations

import base64
import binascii
import json
import time

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from outlook_mcp.utils.errors import InvalidState

STATE_VERSION = 1


def now_ms() -> int:
    """Current time in epoch milliseconds."""
    return int(time.time() * 1000)


class AuthState(BaseModel):
    """Transient record round-tripped through the OAuth ``state`` parameter.

    Attributes:
        v: Encoding version.
        user_id: Encrypted identity (``iv_hex:ciphertext_hex``).
        issued_at: Epoch milliseconds at which the authorization URL was built.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    v: int = Field(default=STATE_VERSION, description="Encoding version")
    user_id: str = Field(..., min_length=1, description="Encrypted identity")
    issued_at: int = Field(default_factory=now_ms, description="Epoch millis")

    def encode(self) -> str:
        """Serialize to an opaque URL-safe string."""
        raw = self.model_dump_json().encode("utf-8")
        return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")

    @classmethod
    def decode(cls, value: str) -> AuthState:
        """Parse a value produced by :meth:`encode`.

        Raises:
            InvalidState: If the value is not a well-formed state of a
                supported version.
        """
        try:
            padded = value + "=" * (-len(value) % 4)
            raw = base64.urlsafe_b64decode(padded.encode("ascii"))
            state = cls.model_validate(json.loads(raw))
        except (
            binascii.Error,
            UnicodeError,
            ValueError,
            PydanticValidationError,
        ) as e:
            raise InvalidState(
                "Malformed state parameter",
                details={"error_type": type(e).__name__},
            ) from e

        if state.v != STATE_VERSION:
            raise InvalidState(
                "Unsupported state version",
                details={"version": state.v},
            )
        return state

    def age_seconds(self, now: int | None = None) -> float:
        """Seconds elapsed since issuance (negative if issued in the future)."""
        current = now_ms() if now is None else now
        return (current - self.issued_at) / 1000


__all__ = ["AuthState", "STATE_VERSION", "now_ms"]
