"""Wallet transaction records evidencing that an order was funded.

Records are stored as a JSON list in the ``transactions`` column of a sale.
Decoding is strict: corrupt data raises ``TransactionDecodeError`` instead of
yielding an empty list.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Iterable


class TransactionDecodeError(ValueError):
    """Raised when a stored transaction list cannot be decoded."""


@dataclass
class TransactionRecord:
    """A single wallet transaction output paying to an order's address."""

    txid: str
    index: int = 0
    value: int = 0  # Satoshis; negative for spends
    script_pubkey: str = ""
    spent: bool = False
    timestamp: str = ""  # ISO datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "txid": self.txid,
            "index": self.index,
            "value": self.value,
            "script_pubkey": self.script_pubkey,
            "spent": self.spent,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TransactionRecord:
        if "txid" not in data:
            raise TransactionDecodeError("Transaction record missing txid.")
        try:
            return cls(
                txid=str(data["txid"]),
                index=int(data.get("index", 0)),
                value=int(data.get("value", 0)),
                script_pubkey=str(data.get("script_pubkey", "")),
                spent=bool(data.get("spent", False)),
                timestamp=str(data.get("timestamp", "")),
            )
        except (TypeError, ValueError) as e:
            raise TransactionDecodeError(f"Invalid transaction record: {e}") from e


def encode_transactions(records: Iterable[TransactionRecord]) -> str:
    """Serialize records to a JSON list. An empty iterable gives ``"[]"``."""
    return json.dumps([r.to_dict() for r in records])


def decode_transactions(data: str | bytes | None) -> list[TransactionRecord]:
    """Deserialize a JSON list of records.

    ``None`` (funding never recorded) decodes to an empty list.
    """
    if data is None:
        return []
    try:
        obj = json.loads(data)
    except (json.JSONDecodeError, TypeError, UnicodeDecodeError) as e:
        raise TransactionDecodeError(f"Transaction list is corrupt: {e}") from e

    if not isinstance(obj, list):
        raise TransactionDecodeError("Transaction list is not a JSON array.")

    records = []
    for item in obj:
        if not isinstance(item, dict):
            raise TransactionDecodeError("Transaction record is not a JSON object.")
        records.append(TransactionRecord.from_dict(item))
    return records
