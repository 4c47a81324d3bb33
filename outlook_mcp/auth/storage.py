"""Per-user token storage with file-based persistence.

Each identity owns one JSON file holding its TokenRecord. Records are kept in
clear JSON; only the identity is encrypted in transit.

Storage location: {base_dir}/.outlook-mcp-tokens-{user_id}.json

Security considerations:
- File permissions are set to 0600 (owner read/write only)
- Identities are validated, not rewritten, so the path mapping stays injective
- Writes go to a temporary file that is atomically renamed over the target
"""

from __future__ import annotations

import json
import logging
import os
import re
import tempfile
from pathlib import Path

from pydantic import ValidationError as PydanticValidationError

from outlook_mcp.auth.models import TokenRecord
from outlook_mcp.auth.state import now_ms
from outlook_mcp.utils.errors import TokenError, ValidationError

logger = logging.getLogger(__name__)

TOKEN_FILE_PREFIX = ".outlook-mcp-tokens-"
TOKEN_FILE_SUFFIX = ".json"

_IDENTITY_PATTERN = re.compile(r"^[A-Za-z0-9._@+-]{1,128}$")


def validate_identity(user_id: str) -> str:
    """Reject identities that cannot safely name a file.

    Args:
        user_id: Identity to check.

    Returns:
        The identity, unchanged.

    Raises:
        ValidationError: If the identity contains path separators or other
            characters outside ``[A-Za-z0-9._@+-]``, is empty, longer than 128
            characters, or consists only of dots.
    """
    if not _IDENTITY_PATTERN.match(user_id) or set(user_id) == {"."}:
        raise ValidationError(
            "Invalid user_id - only letters, digits and . _ @ + - are allowed",
            field="user_id",
            details={"original_user_id": user_id[:50]},  # Truncate for safety
        )
    return user_id


class TokenStore:
    """File-based token storage, one file per identity.

    Attributes:
        _base_dir: Directory where token files are stored.

    Example:
        >>> store = TokenStore(Path("/tmp/tokens"))
        >>> store.save("alice", TokenRecord(access_token="T", expires_at=0))
        >>> store.load("alice").access_token
        'T'
    """

    def __init__(self, base_dir: Path | None = None) -> None:
        """Initialize token storage with optional custom directory.

        Args:
            base_dir: Directory for storing token files. If not provided,
                defaults to the user's home directory.
        """
        if base_dir is None:
            base_dir = Path.home()

        self._base_dir = base_dir.expanduser()
        self._base_dir.mkdir(parents=True, exist_ok=True)
        logger.info("TokenStore initialized at %s", self._base_dir)

    @property
    def base_dir(self) -> Path:
        """Directory holding the token files."""
        return self._base_dir

    def path_for(self, user_id: str) -> Path:
        """Get the file path for a user's token record.

        Raises:
            ValidationError: If the identity is not a safe filename component.
        """
        validate_identity(user_id)
        return self._base_dir / f"{TOKEN_FILE_PREFIX}{user_id}{TOKEN_FILE_SUFFIX}"

    def save(self, user_id: str, record: TokenRecord) -> None:
        """Write the full token record for a user, replacing any prior one.

        Concurrent readers see either the old file or the new one, never a
        partial write.

        Args:
            user_id: User identifier.
            record: Token record to persist.

        Raises:
            ValidationError: If the identity is not a safe filename component.
            TokenError: If writing the file fails.
        """
        path = self.path_for(user_id)
        payload = record.model_dump_json(indent=2)

        tmp_name: str | None = None
        try:
            fd, tmp_name = tempfile.mkstemp(
                dir=self._base_dir,
                prefix=f"{path.name}.",
                suffix=".tmp",
            )
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(payload)
                fh.flush()
                os.fsync(fh.fileno())

            # Restrict permissions to owner read/write only (0600)
            os.chmod(tmp_name, 0o600)
            os.replace(tmp_name, path)
            tmp_name = None

            logger.info("Saved token for user %s to %s", user_id, path)

        except PermissionError as e:
            logger.error("Permission denied writing token file: %s", e)
            raise TokenError(
                "Permission denied writing token file",
                details={"path": str(path), "error": str(e)},
            ) from e
        except OSError as e:
            logger.error("Failed to save token for %s: %s", user_id, e)
            raise TokenError(
                f"Failed to save token: {e}",
                details={"user_id": user_id, "error_type": type(e).__name__},
            ) from e
        finally:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)

    def load(self, user_id: str) -> TokenRecord | None:
        """Load the token record for a user.

        Args:
            user_id: User identifier.

        Returns:
            The token record, or None if no usable record exists. Unreadable
            or corrupt files are logged and treated as absent.

        Raises:
            ValidationError: If the identity is not a safe filename component.
        """
        path = self.path_for(user_id)

        if not path.exists():
            logger.debug("No token found for user %s", user_id)
            return None

        try:
            record = TokenRecord.model_validate(json.loads(path.read_text("utf-8")))
            logger.debug("Loaded token for user %s", user_id)
            return record

        except json.JSONDecodeError as e:
            logger.error("Invalid JSON in token file for %s: %s", user_id, e)
        except PydanticValidationError as e:
            logger.error(
                "Token file for %s is not a valid token record: %d errors",
                user_id,
                e.error_count(),
            )
        except (OSError, UnicodeDecodeError) as e:
            logger.error("Failed to read token file for %s: %s", user_id, e)
        return None

    def delete(self, user_id: str) -> bool:
        """Delete the token record for a user.

        Returns:
            True if a record was deleted, False if none existed.

        Raises:
            TokenError: If file deletion fails.
        """
        path = self.path_for(user_id)

        if not path.exists():
            logger.debug("No token to delete for user %s", user_id)
            return False

        try:
            path.unlink()
            logger.info("Deleted token for user %s", user_id)
            return True

        except FileNotFoundError:
            return False
        except OSError as e:
            logger.error("Failed to delete token for %s: %s", user_id, e)
            raise TokenError(
                f"Failed to delete token: {e}",
                details={"user_id": user_id, "error_type": type(e).__name__},
            ) from e

    def exists(self, user_id: str) -> bool:
        """Check if a token file exists for a user."""
        return self.path_for(user_id).exists()

    def list_users(self) -> list[str]:
        """List all users with stored tokens."""
        users = []
        for path in self._base_dir.glob(f"{TOKEN_FILE_PREFIX}*{TOKEN_FILE_SUFFIX}"):
            users.append(path.name[len(TOKEN_FILE_PREFIX) : -len(TOKEN_FILE_SUFFIX)])
        return sorted(users)

    @staticmethod
    def is_valid(record: TokenRecord | None, now: int | None = None) -> bool:
        """True iff the record has an access token and ``now < expires_at``.

        Args:
            record: Token record, or None.
            now: Epoch millis to evaluate at. Defaults to the current time.
        """
        if record is None:
            return False
        return record.is_valid(now_ms() if now is None else now)


__all__ = [
    "TokenStore",
    "validate_identity",
    "TOKEN_FILE_PREFIX",
]
