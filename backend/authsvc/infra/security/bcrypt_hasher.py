"""bcrypt-backed password hashing and random password generation."""

from __future__ import annotations

import logging
import secrets
import string
from dataclasses import dataclass, field

import bcrypt

from authsvc.core.config import MAX_BCRYPT_ROUNDS, MIN_BCRYPT_ROUNDS
from authsvc.services._shared.errors import HashingError, VerificationError

logger = logging.getLogger(__name__)

RANDOM_PASSWORD_SYMBOLS = "!@#$%^&*"
RANDOM_PASSWORD_CHARSET = (
    string.ascii_lowercase + string.ascii_uppercase + string.digits + RANDOM_PASSWORD_SYMBOLS
)
_DUMMY_PLAINTEXT = "authsvc-timing-dummy"
# bcrypt only reads the first 72 bytes; newer releases raise instead of truncating
BCRYPT_MAX_BYTES = 72


def _encode(plaintext: str) -> bytes:
    return plaintext.encode("utf-8")[:BCRYPT_MAX_BYTES]


def generate_random_password(length: int = 12) -> str:
    """
    Return a random password containing every character class.

    One lowercase letter, one uppercase letter, one digit and one symbol from
    ``!@#$%^&*`` are always present; the remaining positions are drawn from
    the full charset and the result is shuffled.

    :param length: Total length (``>= 4``).
    :returns: Random password.
    :raises ValueError: If ``length`` is below 4.
    """
    if length < 4:
        raise ValueError("Password length must be at least 4")
    chars = [
        secrets.choice(string.ascii_lowercase),
        secrets.choice(string.ascii_uppercase),
        secrets.choice(string.digits),
        secrets.choice(RANDOM_PASSWORD_SYMBOLS),
    ]
    chars.extend(secrets.choice(RANDOM_PASSWORD_CHARSET) for _ in range(length - 4))
    secrets.SystemRandom().shuffle(chars)
    return "".join(chars)


@dataclass(slots=True)
class BcryptCredentialHasher:
    """
    Password hasher using bcrypt directly.

    :param rounds: bcrypt cost factor (4..31; 10..15 in practice).
    """

    rounds: int = 12
    _dummy_hash: bytes | None = field(default=None, init=False, repr=False)

    def __post_init__(self) -> None:
        if not MIN_BCRYPT_ROUNDS <= self.rounds <= MAX_BCRYPT_ROUNDS:
            raise ValueError(
                f"bcrypt rounds must be between {MIN_BCRYPT_ROUNDS} and {MAX_BCRYPT_ROUNDS}"
            )

    def hash(self, plaintext: str) -> str:
        """
        Hash a password with a fresh salt.

        :raises HashingError: If bcrypt rejects the input or fails.
        """
        try:
            salt = bcrypt.gensalt(self.rounds)
            return bcrypt.hashpw(_encode(plaintext), salt).decode("utf-8")
        except (TypeError, ValueError, AttributeError) as exc:
            logger.error("Password hashing failed", exc_info=True)
            raise HashingError() from exc

    def verify(self, plaintext: str, hashed: str) -> bool:
        """
        Compare a candidate against a stored hash.

        Mismatches and structurally invalid hashes both yield ``False``.

        :raises VerificationError: On any other failure of the primitive.
        """
        try:
            return bcrypt.checkpw(_encode(plaintext), hashed.encode("utf-8"))
        except ValueError:
            # Invalid salt / corrupt hash
            return False
        except (TypeError, AttributeError) as exc:
            logger.error("Password verification failed", exc_info=True)
            raise VerificationError() from exc

    def dummy_verify(self, plaintext: str) -> None:
        """Burn one verification's worth of time against a throwaway hash."""
        if self._dummy_hash is None:
            self._dummy_hash = bcrypt.hashpw(
                _encode(_DUMMY_PLAINTEXT), bcrypt.gensalt(self.rounds)
            )
        try:
            bcrypt.checkpw(_encode(plaintext), self._dummy_hash)
        except (TypeError, ValueError, AttributeError):
            logger.debug("Dummy verification raised; ignored")

    generate_random_password = staticmethod(generate_random_password)
