# SPDX-License-Identifier: MIT
"""Stable per-instance identity used by the self-origin filter."""

import secrets
import string
from pathlib import Path

from .constants import IDENTITY_MIN_LENGTH, IDENTITY_TOKEN_LENGTH
from .exceptions import FilesystemUnavailableError
from .logging_config import get_detail_logger


detail_logger = get_detail_logger()

_ALPHABET = string.ascii_letters + string.digits


def generate_identity(length: int = IDENTITY_TOKEN_LENGTH) -> str:
    """Generate a random alphanumeric instance token.

    Args:
        length: Token length, at least IDENTITY_MIN_LENGTH

    Returns:
        The new token
    """
    if length < IDENTITY_MIN_LENGTH:
        raise ValueError(f"Identity length must be at least {IDENTITY_MIN_LENGTH}")
    return "".join(secrets.choice(_ALPHABET) for _ in range(length))


class IdentityProvider:
    """Reads, and on first use creates, the persisted instance identity."""

    def __init__(self, identity_file: Path):
        self.identity_file = Path(identity_file)
        self._identity: str | None = None

    def get_identity(self) -> str:
        """Get the instance identity, generating and persisting it if needed.

        Returns:
            The instance token

        Raises:
            FilesystemUnavailableError: If the identity file cannot be read or written
        """
        if self._identity is not None:
            return self._identity

        try:
            stored = (
                self.identity_file.read_text(encoding="utf-8").strip()
                if self.identity_file.exists()
                else ""
            )
        except OSError as e:
            raise FilesystemUnavailableError(
                f"Cannot read identity file: {e}", path=str(self.identity_file)
            ) from e

        if stored:
            detail_logger.debug(f"Loaded instance identity from {self.identity_file}")
            self._identity = stored
            return stored

        identity = generate_identity()
        try:
            self.identity_file.parent.mkdir(parents=True, exist_ok=True)
            self.identity_file.write_text(identity, encoding="utf-8")
        except OSError as e:
            raise FilesystemUnavailableError(
                f"Cannot write identity file: {e}", path=str(self.identity_file)
            ) from e

        detail_logger.info(f"Generated new instance identity at {self.identity_file}")
        self._identity = identity
        return identity
