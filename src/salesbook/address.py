"""Blockchain address interface used as the secondary sale lookup key.

Any wallet address type exposing ``encode_address()`` can be passed to
``SaleRecordStore.get_by_payment_address``.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class Address(Protocol):
    """A blockchain address with a canonical string encoding."""

    def encode_address(self) -> str: ...


def encode_address(address: Address | str) -> str:
    """Return the canonical encoding; plain strings are taken as already encoded."""
    if isinstance(address, str):
        return address
    return address.encode_address()
