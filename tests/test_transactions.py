"""Tests for TransactionRecord and the transaction list codec."""

import json

import pytest

from salesbook.transactions import (
    TransactionDecodeError,
    TransactionRecord,
    decode_transactions,
    encode_transactions,
)


# ---------------------------------------------------------------------------
# TransactionRecord
# ---------------------------------------------------------------------------


class TestTransactionRecord:
    def test_defaults(self) -> None:
        rec = TransactionRecord(txid="abc")
        assert rec.index == 0
        assert rec.value == 0
        assert rec.spent is False
        assert rec.timestamp == ""

    def test_to_dict(self) -> None:
        rec = TransactionRecord(txid="abc", index=1, value=500, spent=True)
        assert rec.to_dict() == {
            "txid": "abc",
            "index": 1,
            "value": 500,
            "script_pubkey": "",
            "spent": True,
            "timestamp": "",
        }

    def test_from_dict_missing_optional_fields(self) -> None:
        rec = TransactionRecord.from_dict({"txid": "abc"})
        assert rec == TransactionRecord(txid="abc")

    def test_from_dict_without_txid_raises(self) -> None:
        with pytest.raises(TransactionDecodeError):
            TransactionRecord.from_dict({"value": 1})

    def test_from_dict_bad_value_raises(self) -> None:
        with pytest.raises(TransactionDecodeError):
            TransactionRecord.from_dict({"txid": "abc", "value": "lots"})


# ---------------------------------------------------------------------------
# List codec
# ---------------------------------------------------------------------------


class TestTransactionCodec:
    def test_encode_empty_is_json_array(self) -> None:
        assert encode_transactions([]) == "[]"

    def test_encode_preserves_order(self) -> None:
        data = json.loads(encode_transactions(
            [TransactionRecord(txid="a"), TransactionRecord(txid="b")]
        ))
        assert [d["txid"] for d in data] == ["a", "b"]

    def test_decode_none_is_empty(self) -> None:
        assert decode_transactions(None) == []

    def test_decode_bytes(self) -> None:
        records = decode_transactions(b'[{"txid": "a", "value": -20}]')
        assert records == [TransactionRecord(txid="a", value=-20)]

    def test_decode_roundtrip(self) -> None:
        original = [
            TransactionRecord(txid="a", index=2, value=1000, script_pubkey="76a9",
                              timestamp="2017-03-01T12:00:00+00:00"),
        ]
        assert decode_transactions(encode_transactions(original)) == original

    def test_decode_corrupt_json_raises(self) -> None:
        with pytest.raises(TransactionDecodeError):
            decode_transactions("[{")

    def test_decode_non_list_raises(self) -> None:
        with pytest.raises(TransactionDecodeError):
            decode_transactions('{"txid": "a"}')

    def test_decode_non_object_item_raises(self) -> None:
        with pytest.raises(TransactionDecodeError):
            decode_transactions('["a"]')
