"""Domain primitives that enforce validity at creation time."""

import re
import uuid
from dataclasses import dataclass
from typing import Self

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_WALLET_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")
_REFERENCE_RE = re.compile(r"^0x[0-9a-f]{64}$")


def new_id(prefix: str) -> str:
    """Return a fresh identifier such as ``ticket-<32 hex chars>``."""
    return f"{prefix}-{uuid.uuid4().hex}"


@dataclass(frozen=True)
class EmailAddress:
    """Email address, normalised to lower case."""

    value: str

    def __post_init__(self) -> None:
        if not isinstance(self.value, str) or not _EMAIL_RE.match(self.value.strip()):
            raise ValueError("Malformed email address")
        object.__setattr__(self, "value", self.value.strip().lower())

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class WalletAddress:
    """Hex-encoded 20-byte account address, e.g. ``0xab...``."""

    value: str

    def __post_init__(self) -> None:
        if not isinstance(self.value, str) or not _WALLET_RE.match(self.value):
            raise ValueError("Wallet address must be 0x followed by 40 hex digits")

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class TransactionReference:
    """Ledger transaction reference: ``0x`` plus 64 lowercase hex digits."""

    value: str

    def __post_init__(self) -> None:
        if not self.is_well_formed(self.value):
            raise ValueError("Malformed transaction reference")

    @staticmethod
    def is_well_formed(value: object) -> bool:
        return isinstance(value, str) and bool(_REFERENCE_RE.match(value))

    @classmethod
    def from_digest(cls, hex_digest: str) -> Self:
        return cls(value=f"0x{hex_digest}")

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Capacity:
    """Positive integer representing event capacity."""

    value: int

    def __post_init__(self) -> None:
        if isinstance(self.value, bool) or not isinstance(self.value, int):
            raise ValueError("Capacity must be an integer")
        if self.value <= 0:
            raise ValueError("Capacity must be positive")
