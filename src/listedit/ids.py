"""Process-unique short identifiers for listed entities."""

from __future__ import annotations

import random
import string

ALPHABET = string.ascii_uppercase + string.ascii_lowercase + string.digits
DEFAULT_IDENTITY_LENGTH = 5
DEFAULT_MAX_ATTEMPTS = 1000


class IdentityExhaustedError(RuntimeError):
    """Raised when no unused identity can be drawn."""


def is_identity(token: str, *, length: int = DEFAULT_IDENTITY_LENGTH) -> bool:
    """Return ``True`` if ``token`` has the shape of an issued identity."""

    return len(token) == length and all(char in ALPHABET for char in token)


class IdentityAllocator:
    """Issues random fixed-length tokens, never returning the same one twice."""

    def __init__(
        self,
        length: int = DEFAULT_IDENTITY_LENGTH,
        *,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        rng: random.Random | None = None,
    ) -> None:
        if length < 1:
            raise ValueError("Identity length must be positive")
        self.length = length
        self.max_attempts = max_attempts
        self._rng = rng or random.SystemRandom()
        self._issued: set[str] = set()

    @property
    def capacity(self) -> int:
        return len(ALPHABET) ** self.length

    def allocate(self) -> str:
        if len(self._issued) >= self.capacity:
            raise IdentityExhaustedError(f"All {self.capacity} identities of length {self.length} are in use")

        for _ in range(self.max_attempts):
            token = "".join(self._rng.choice(ALPHABET) for _ in range(self.length))
            if token not in self._issued:
                self._issued.add(token)
                return token

        raise IdentityExhaustedError(
            f"Could not draw an unused identity after {self.max_attempts} attempts ({len(self._issued)} issued)"
        )

    def reserve(self, token: str) -> None:
        """Mark ``token`` as issued so it is never handed out."""

        self._issued.add(token)

    def __contains__(self, token: object) -> bool:
        return token in self._issued

    def __len__(self) -> int:
        return len(self._issued)
