from __future__ import annotations

from typing import Protocol


class PasswordHasher(Protocol):
    """
    Port for one-way password hashing.

    ``verify`` returns ``False`` for mismatches *and* for malformed hashes;
    only unexpected primitive failures raise.
    """

    def hash(self, plaintext: str) -> str: ...

    def verify(self, plaintext: str, hashed: str) -> bool: ...

    def dummy_verify(self, plaintext: str) -> None: ...
