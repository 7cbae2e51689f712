"""
Heirlock events
===============
The three notifications emitted by a successful Heirlock call, and their
ARC-28 log encoding.

On chain every event is one ``log`` line:

    selector (4 bytes) || ABI-encoded arguments

where the selector is the first four bytes of SHA-512/256 over the event
signature, e.g. ``Withdrawal(address,uint64)``. Addresses are encoded as
their raw 32 bytes and amounts as big-endian uint64, so the Python model
and the TEAL program produce byte-identical logs.
"""

import base64
from dataclasses import dataclass
from typing import ClassVar, Dict, List, Optional, Union

from algosdk import encoding


ZERO_ADDRESS = encoding.encode_address(bytes(32))


def is_zero_address(address: Optional[str]) -> bool:
    """The null identity: empty, ``None`` or the all-zero Algorand address."""
    return not address or address == ZERO_ADDRESS


def event_selector(signature: str) -> bytes:
    return encoding.checksum(signature.encode())[:4]


@dataclass(frozen=True)
class OwnershipTransferred:
    previous_owner: str
    new_owner: str

    SIGNATURE: ClassVar[str] = "OwnershipTransferred(address,address)"

    @classmethod
    def selector(cls) -> bytes:
        return event_selector(cls.SIGNATURE)

    def encode(self) -> bytes:
        return (
            self.selector()
            + encoding.decode_address(self.previous_owner)
            + encoding.decode_address(self.new_owner)
        )

    @classmethod
    def decode(cls, body: bytes) -> "OwnershipTransferred":
        _expect_length(cls, body, 64)
        return cls(
            previous_owner=encoding.encode_address(body[:32]),
            new_owner=encoding.encode_address(body[32:]),
        )


@dataclass(frozen=True)
class HeirUpdated:
    previous_heir: str
    new_heir: str

    SIGNATURE: ClassVar[str] = "HeirUpdated(address,address)"

    @classmethod
    def selector(cls) -> bytes:
        return event_selector(cls.SIGNATURE)

    def encode(self) -> bytes:
        return (
            self.selector()
            + encoding.decode_address(self.previous_heir)
            + encoding.decode_address(self.new_heir)
        )

    @classmethod
    def decode(cls, body: bytes) -> "HeirUpdated":
        _expect_length(cls, body, 64)
        return cls(
            previous_heir=encoding.encode_address(body[:32]),
            new_heir=encoding.encode_address(body[32:]),
        )


@dataclass(frozen=True)
class Withdrawal:
    by: str
    amount: int

    SIGNATURE: ClassVar[str] = "Withdrawal(address,uint64)"

    @classmethod
    def selector(cls) -> bytes:
        return event_selector(cls.SIGNATURE)

    def encode(self) -> bytes:
        return (
            self.selector()
            + encoding.decode_address(self.by)
            + self.amount.to_bytes(8, "big")
        )

    @classmethod
    def decode(cls, body: bytes) -> "Withdrawal":
        _expect_length(cls, body, 40)
        return cls(
            by=encoding.encode_address(body[:32]),
            amount=int.from_bytes(body[32:], "big"),
        )


Event = Union[OwnershipTransferred, HeirUpdated, Withdrawal]

EVENT_TYPES = (OwnershipTransferred, HeirUpdated, Withdrawal)

_BY_SELECTOR: Dict[bytes, type] = {t.selector(): t for t in EVENT_TYPES}


def _expect_length(event_type: type, body: bytes, size: int) -> None:
    if len(body) != size:
        raise ValueError(
            f"{event_type.__name__} payload must be {size} bytes, got {len(body)}"
        )


def decode_log(raw: bytes) -> Optional[Event]:
    """Decode one log line, or return None when it is not a Heirlock event."""
    event_type = _BY_SELECTOR.get(bytes(raw[:4]))
    if event_type is None:
        return None
    return event_type.decode(bytes(raw[4:]))


def decode_logs(tx_info: dict) -> List[Event]:
    """Decode the base64 ``logs`` of an algod pending-transaction response."""
    events = []
    for line in tx_info.get("logs", []):
        event = decode_log(base64.b64decode(line))
        if event is not None:
            events.append(event)
    return events
