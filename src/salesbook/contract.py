"""Ricardian contract document for a marketplace order.

Contracts are plain dataclasses; the sale store keeps them as indented
camelCase JSON with every field emitted (defaults included), enums written
by name and timestamps as RFC 3339 UTC strings. Naive datetimes are read as
UTC everywhere, see ``as_utc()``. Absent sub-documents are written as
``null``.

``from_json()`` raises ``ContractDecodeError`` on corrupt or structurally
invalid data; a sale must never be rebuilt from a half-parsed contract.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import IntEnum
from typing import Any, Callable, TypeVar

_T = TypeVar("_T")


class ContractDecodeError(ValueError):
    """Raised when a serialized contract cannot be decoded."""


class PaymentMethod(IntEnum):
    """How the buyer intends to pay for an order."""

    ADDRESS_REQUEST = 0  # Vendor supplies the address in its confirmation
    DIRECT = 1  # Buyer pays straight to an address in the order
    MODERATED = 2  # Multisig escrow with a moderator


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def as_utc(value: datetime) -> datetime:
    """Return ``value`` in UTC; a naive datetime is taken to already be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _format_timestamp(value: datetime | None) -> str | None:
    if value is None:
        return None
    return as_utc(value).isoformat().replace("+00:00", "Z")


def _parse_timestamp(value: Any) -> datetime | None:
    if value is None:
        return None
    return as_utc(datetime.fromisoformat(str(value).replace("Z", "+00:00")))


def _parse_method(value: Any) -> PaymentMethod:
    if isinstance(value, str):
        try:
            return PaymentMethod[value]
        except KeyError:
            raise ContractDecodeError(f"Unknown payment method {value!r}.") from None
    return PaymentMethod(int(value))


def _optional(
    data: dict[str, Any], key: str, loader: Callable[[dict[str, Any]], _T]
) -> _T | None:
    """Decode an optional sub-document; ``null`` or missing gives None."""
    raw = data.get(key)
    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise ContractDecodeError(f"Field {key!r} is not an object.")
    return loader(raw)


def _objects(data: dict[str, Any], key: str) -> list[dict[str, Any]]:
    raw = data.get(key) or []
    if not isinstance(raw, list) or not all(isinstance(x, dict) for x in raw):
        raise ContractDecodeError(f"Field {key!r} is not a list of objects.")
    return raw


# ---------------------------------------------------------------------------
# Vendor listing
# ---------------------------------------------------------------------------


@dataclass
class Image:
    filename: str = ""
    hash: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"filename": self.filename, "hash": self.hash}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Image:
        return cls(
            filename=str(data.get("filename", "")),
            hash=str(data.get("hash", "")),
        )


@dataclass
class Item:
    title: str = ""
    description: str = ""
    images: list[Image] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "images": [img.to_dict() for img in self.images],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Item:
        return cls(
            title=str(data.get("title", "")),
            description=str(data.get("description", "")),
            images=[Image.from_dict(img) for img in _objects(data, "images")],
        )


@dataclass
class Listing:
    """A vendor listing as it stood when the order was placed."""

    slug: str = ""
    vendor_guid: str = ""
    item: Item | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "slug": self.slug,
            "vendorGuid": self.vendor_guid,
            "item": self.item.to_dict() if self.item else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Listing:
        return cls(
            slug=str(data.get("slug", "")),
            vendor_guid=str(data.get("vendorGuid", "")),
            item=_optional(data, "item", Item.from_dict),
        )


# ---------------------------------------------------------------------------
# Buyer order
# ---------------------------------------------------------------------------


@dataclass
class BuyerID:
    guid: str = ""
    blockchain_id: str = ""  # Human-readable handle, may be empty

    def to_dict(self) -> dict[str, Any]:
        return {"guid": self.guid, "blockchainID": self.blockchain_id}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BuyerID:
        return cls(
            guid=str(data.get("guid", "")),
            blockchain_id=str(data.get("blockchainID", "")),
        )


@dataclass
class Shipping:
    ship_to: str = ""
    address: str = ""
    city: str = ""
    state: str = ""
    postal_code: str = ""
    country: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "shipTo": self.ship_to,
            "address": self.address,
            "city": self.city,
            "state": self.state,
            "postalCode": self.postal_code,
            "country": self.country,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Shipping:
        return cls(
            ship_to=str(data.get("shipTo", "")),
            address=str(data.get("address", "")),
            city=str(data.get("city", "")),
            state=str(data.get("state", "")),
            postal_code=str(data.get("postalCode", "")),
            country=str(data.get("country", "")),
        )


@dataclass
class Payment:
    method: PaymentMethod = PaymentMethod.ADDRESS_REQUEST
    moderator: str = ""
    amount: int = 0  # Satoshis
    address: str = ""  # Only meaningful for DIRECT payments

    def to_dict(self) -> dict[str, Any]:
        return {
            "method": self.method.name,
            "moderator": self.moderator,
            "amount": self.amount,
            "address": self.address,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Payment:
        return cls(
            method=_parse_method(data.get("method", 0)),
            moderator=str(data.get("moderator", "")),
            amount=int(data.get("amount", 0)),
            address=str(data.get("address", "")),
        )


@dataclass
class BuyerOrder:
    ref_hash: str = ""
    timestamp: datetime | None = None
    buyer_id: BuyerID | None = None
    shipping: Shipping | None = None
    payment: Payment | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "refHash": self.ref_hash,
            "timestamp": _format_timestamp(self.timestamp),
            "buyerID": self.buyer_id.to_dict() if self.buyer_id else None,
            "shipping": self.shipping.to_dict() if self.shipping else None,
            "payment": self.payment.to_dict() if self.payment else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BuyerOrder:
        return cls(
            ref_hash=str(data.get("refHash", "")),
            timestamp=_parse_timestamp(data.get("timestamp")),
            buyer_id=_optional(data, "buyerID", BuyerID.from_dict),
            shipping=_optional(data, "shipping", Shipping.from_dict),
            payment=_optional(data, "payment", Payment.from_dict),
        )


@dataclass
class VendorOrderConfirmation:
    order_id: str = ""
    payment_address: str = ""  # Set for ADDRESS_REQUEST payments
    timestamp: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "orderID": self.order_id,
            "paymentAddress": self.payment_address,
            "timestamp": _format_timestamp(self.timestamp),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> VendorOrderConfirmation:
        return cls(
            order_id=str(data.get("orderID", "")),
            payment_address=str(data.get("paymentAddress", "")),
            timestamp=_parse_timestamp(data.get("timestamp")),
        )


# ---------------------------------------------------------------------------
# RicardianContract
# ---------------------------------------------------------------------------


@dataclass
class RicardianContract:
    """The full order document: listings, buyer order, vendor confirmation.

    Equality is structural (dataclass ``__eq__``), which is the document
    equality used when comparing a stored contract with the original.
    """

    vendor_listings: list[Listing] = field(default_factory=list)
    buyer_order: BuyerOrder | None = None
    vendor_order_confirmation: VendorOrderConfirmation | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "vendorListings": [lst.to_dict() for lst in self.vendor_listings],
            "buyerOrder": self.buyer_order.to_dict() if self.buyer_order else None,
            "vendorOrderConfirmation": (
                self.vendor_order_confirmation.to_dict()
                if self.vendor_order_confirmation
                else None
            ),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RicardianContract:
        return cls(
            vendor_listings=[
                Listing.from_dict(lst) for lst in _objects(data, "vendorListings")
            ],
            buyer_order=_optional(data, "buyerOrder", BuyerOrder.from_dict),
            vendor_order_confirmation=_optional(
                data, "vendorOrderConfirmation", VendorOrderConfirmation.from_dict
            ),
        )

    # -- serialization --------------------------------------------------------

    def to_json(self) -> str:
        """Serialize to human-readable JSON (4-space indent)."""
        return json.dumps(self.to_dict(), indent=4)

    @classmethod
    def from_json(cls, data: str | bytes) -> RicardianContract:
        """Deserialize from JSON. Raises ``ContractDecodeError`` on bad input."""
        try:
            obj = json.loads(data)
        except (json.JSONDecodeError, TypeError, UnicodeDecodeError) as e:
            raise ContractDecodeError(f"Contract is corrupt: {e}") from e

        if not isinstance(obj, dict):
            raise ContractDecodeError("Contract is not a JSON object.")

        try:
            return cls.from_dict(obj)
        except ContractDecodeError:
            raise
        except (TypeError, ValueError, AttributeError) as e:
            raise ContractDecodeError(f"Contract has invalid fields: {e}") from e
