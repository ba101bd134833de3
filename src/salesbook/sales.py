"""Vendor sale records over a single ``sales`` table.

Each row is one order seen from the vendor's side: the contract document,
the order state, a read flag and the funding evidence gathered from the
wallet. Rows are reachable by order id and by payment address.

Funding columns belong to ``update_funding()``. ``put()`` rewrites every
other column but carries ``funded``/``transactions`` forward from the
existing row, so re-saving a contract never loses funding evidence.

All operations hold one reentrant lock for their whole duration; the
SQLite engine shares a single connection between threads.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Iterable

from sqlalchemy import (
    Column,
    Index,
    Integer,
    MetaData,
    Table,
    Text,
    delete,
    func,
    select,
    update,
)
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from salesbook.address import Address, encode_address
from salesbook.config import SalesbookConfig, create_engine_from_config
from salesbook.constants import TABLE_NAME, OrderState
from salesbook.contract import (
    ContractDecodeError,
    PaymentMethod,
    RicardianContract,
    as_utc,
)
from salesbook.transactions import (
    TransactionDecodeError,
    TransactionRecord,
    decode_transactions,
    encode_transactions,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exception hierarchy
# ---------------------------------------------------------------------------


class SaleStoreError(Exception):
    """Base exception for sale store operations."""


class SaleNotFoundError(SaleStoreError):
    """No sale matches the requested key."""


class SaleDecodeError(SaleStoreError):
    """A stored contract, transaction list or state code is corrupt."""


class IncompleteContractError(SaleStoreError, ValueError):
    """The contract lacks a nested part needed to build the sale row."""


# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

sales_table = Table(
    TABLE_NAME,
    metadata,
    Column("orderID", Text, primary_key=True),
    Column("contract", Text, nullable=False),
    Column("state", Integer, nullable=False),
    Column("read", Integer, nullable=False, default=0),
    Column("date", Integer),
    Column("total", Integer),
    Column("thumbnail", Text),
    Column("buyerID", Text),
    Column("buyerBlockchainID", Text),
    Column("title", Text),
    Column("shippingName", Text),
    Column("shippingAddress", Text),
    Column("paymentAddr", Text),
    Column("funded", Integer, nullable=False, default=0),
    Column("transactions", Text),  # NULL until funding is first recorded
    Index("ix_sales_paymentAddr", "paymentAddr"),
)


# ---------------------------------------------------------------------------
# Contract -> row mapping
# ---------------------------------------------------------------------------


def payment_address(contract: RicardianContract) -> str:
    """Resolve the address the buyer pays to, or ``""`` if none applies.

    DIRECT orders carry the address in the buyer's payment; ADDRESS_REQUEST
    orders get it from the vendor's confirmation (absent until confirmed).
    """
    order = contract.buyer_order
    if order is None or order.payment is None:
        return ""
    if order.payment.method == PaymentMethod.DIRECT:
        return order.payment.address
    if order.payment.method == PaymentMethod.ADDRESS_REQUEST:
        confirmation = contract.vendor_order_confirmation
        return confirmation.payment_address if confirmation else ""
    return ""


def sale_row(
    order_id: str, contract: RicardianContract, state: OrderState | int, read: bool
) -> dict[str, Any]:
    """Flatten a contract into the content columns of a sale row.

    ``state`` is stored as given, known ``OrderState`` member or not. The
    ``date`` column follows the contract serializer in reading a naive
    timestamp as UTC.

    Funding columns are not included. Raises ``IncompleteContractError``
    when the buyer order (with its buyer id, payment and timestamp), the
    first listing or that listing's first image is missing.
    """
    order = contract.buyer_order
    if order is None:
        raise IncompleteContractError(f"Contract for {order_id} has no buyer order.")
    if order.buyer_id is None:
        raise IncompleteContractError(f"Buyer order for {order_id} has no buyer id.")
    if order.payment is None:
        raise IncompleteContractError(f"Buyer order for {order_id} has no payment.")
    if order.timestamp is None:
        raise IncompleteContractError(f"Buyer order for {order_id} has no timestamp.")
    if not contract.vendor_listings or contract.vendor_listings[0].item is None:
        raise IncompleteContractError(f"Contract for {order_id} has no listing item.")
    item = contract.vendor_listings[0].item
    if not item.images:
        raise IncompleteContractError(f"First listing for {order_id} has no image.")

    shipping_name = ""
    shipping_address = ""
    if order.shipping is not None:
        shipping_name = order.shipping.ship_to.lower()
        shipping_address = order.shipping.address.lower()

    return {
        "orderID": order_id,
        "contract": contract.to_json(),
        "state": int(state),
        "read": 1 if read else 0,
        "date": int(as_utc(order.timestamp).timestamp()),
        "total": int(order.payment.amount),
        "thumbnail": item.images[0].hash,
        "buyerID": order.buyer_id.guid,
        "buyerBlockchainID": order.buyer_id.blockchain_id,
        "title": item.title.lower(),
        "shippingName": shipping_name,
        "shippingAddress": shipping_address,
        "paymentAddr": payment_address(contract),
    }


# ---------------------------------------------------------------------------
# Decoding helpers
# ---------------------------------------------------------------------------


def _decode_contract(order_id: str, data: str) -> RicardianContract:
    try:
        return RicardianContract.from_json(data)
    except ContractDecodeError as e:
        raise SaleDecodeError(f"Stored contract for {order_id} is corrupt: {e}") from e


def _decode_state(order_id: str, value: Any) -> OrderState | int:
    """Known codes come back as ``OrderState``, other integers unchanged."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise SaleDecodeError(f"Stored state for {order_id} is not an integer: {value!r}")
    try:
        return OrderState(value)
    except ValueError:
        return value


def _decode_records(order_id: str, data: str | None) -> list[TransactionRecord]:
    try:
        return decode_transactions(data)
    except TransactionDecodeError as e:
        raise SaleDecodeError(
            f"Stored transactions for {order_id} are corrupt: {e}"
        ) from e


# ---------------------------------------------------------------------------
# SaleRecord
# ---------------------------------------------------------------------------


@dataclass
class SaleRecord:
    """A fully decoded sale row.

    ``funding_recorded`` is False until ``update_funding()`` has run for
    the order; it separates "never checked" from "checked, no transactions".
    """

    order_id: str
    contract: RicardianContract
    state: OrderState | int
    read: bool = False
    funded: bool = False
    transactions: list[TransactionRecord] = field(default_factory=list)
    funding_recorded: bool = False
    timestamp: int = 0
    total: int = 0
    thumbnail: str = ""
    buyer_id: str = ""
    buyer_blockchain_id: str = ""
    title: str = ""
    shipping_name: str = ""
    shipping_address: str = ""
    payment_address: str = ""


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


class SaleRecordStore:
    """Persistence for the vendor side of marketplace orders.

    Constructor takes a ready SQLAlchemy engine; use ``from_config()`` to
    build one from ``SalesbookConfig``. Failures of the engine itself
    (``SQLAlchemyError``) propagate unchanged; nothing is retried.
    """

    def __init__(self, engine: Engine) -> None:
        self._engine = engine
        self._lock = threading.RLock()

    @classmethod
    def from_config(cls, config: SalesbookConfig) -> SaleRecordStore:
        """Create the engine, make sure the table exists and return a store."""
        store = cls(create_engine_from_config(config))
        store.initialize()
        return store

    def initialize(self) -> None:
        """Create the ``sales`` table and its index if missing."""
        with self._lock:
            metadata.create_all(self._engine)
        logger.info(
            "Sales table ready at %s",
            self._engine.url.render_as_string(hide_password=True),
        )

    # -- internal -------------------------------------------------------------

    def _upsert(self, row: dict[str, Any]) -> Any:
        """Insert-or-replace statement for a full row, keyed on orderID."""
        if self._engine.dialect.name == "postgresql":
            stmt = postgresql.insert(sales_table).values(**row)
        else:
            stmt = sqlite.insert(sales_table).values(**row)
        return stmt.on_conflict_do_update(
            index_elements=[sales_table.c.orderID],
            set_={name: stmt.excluded[name] for name in row if name != "orderID"},
        )

    @staticmethod
    def _funding_snapshot(conn: Connection, order_id: str) -> tuple[int, str | None]:
        """Current ``(funded, transactions)`` for an order; ``(0, None)`` if new."""
        existing = conn.execute(
            select(sales_table.c.funded, sales_table.c.transactions).where(
                sales_table.c.orderID == order_id
            )
        ).first()
        if existing is None:
            return 0, None
        return existing.funded, existing.transactions

    # -- writes ---------------------------------------------------------------

    def put(
        self,
        order_id: str,
        contract: RicardianContract,
        state: OrderState | int,
        read: bool,
    ) -> None:
        """Create or replace the sale for ``order_id``, keeping its funding.

        Raises ``IncompleteContractError`` before touching the database if
        the contract cannot be flattened.
        """
        with self._lock:
            row = sale_row(order_id, contract, state, read)
            try:
                with self._engine.begin() as conn:
                    funded, transactions = self._funding_snapshot(conn, order_id)
                    row["funded"] = funded
                    row["transactions"] = transactions
                    conn.execute(self._upsert(row))
            except SQLAlchemyError:
                logger.warning("Put for order %s failed; rolled back.", order_id)
                raise

    def mark_as_read(self, order_id: str) -> None:
        """Flag the sale as viewed by the vendor. Missing orders are ignored."""
        with self._lock, self._engine.begin() as conn:
            result = conn.execute(
                update(sales_table)
                .where(sales_table.c.orderID == order_id)
                .values(read=1)
            )
            if result.rowcount == 0:
                logger.debug("mark_as_read: no sale for order %s.", order_id)

    def update_funding(
        self,
        order_id: str,
        funded: bool,
        records: Iterable[TransactionRecord],
    ) -> None:
        """Overwrite the funding flag and transaction evidence of a sale.

        The record list is always written, so an empty list marks the sale
        as checked. Missing orders are ignored.
        """
        serialized = encode_transactions(records)
        with self._lock, self._engine.begin() as conn:
            result = conn.execute(
                update(sales_table)
                .where(sales_table.c.orderID == order_id)
                .values(funded=1 if funded else 0, transactions=serialized)
            )
            if result.rowcount == 0:
                logger.debug("update_funding: no sale for order %s.", order_id)

    def delete(self, order_id: str) -> None:
        """Remove the sale. Missing orders are ignored."""
        with self._lock, self._engine.begin() as conn:
            conn.execute(delete(sales_table).where(sales_table.c.orderID == order_id))

    # -- reads ----------------------------------------------------------------

    def get_all(self) -> list[str]:
        """Every stored order id, in storage order."""
        with self._lock, self._engine.connect() as conn:
            return list(conn.execute(select(sales_table.c.orderID)).scalars())

    def count(self) -> int:
        """Number of stored sales."""
        with self._lock, self._engine.connect() as conn:
            return conn.execute(
                select(func.count()).select_from(sales_table)
            ).scalar_one()

    def get_by_payment_address(
        self, address: Address | str
    ) -> tuple[RicardianContract, OrderState | int, bool, list[TransactionRecord]]:
        """Look up a sale by the address its buyer pays to.

        Returns ``(contract, state, funded, transactions)``. Writes do not
        enforce address uniqueness; if several sales share the address, the
        one with the lowest order id wins and a warning is logged.
        """
        encoded = encode_address(address)
        if not encoded:
            raise SaleNotFoundError("Empty payment address matches no sale.")

        stmt = (
            select(
                sales_table.c.orderID,
                sales_table.c.contract,
                sales_table.c.state,
                sales_table.c.funded,
                sales_table.c.transactions,
            )
            .where(sales_table.c.paymentAddr == encoded)
            .order_by(sales_table.c.orderID)
            .limit(2)
        )
        with self._lock, self._engine.connect() as conn:
            rows = conn.execute(stmt).all()

        if not rows:
            raise SaleNotFoundError(f"No sale pays to address {encoded}.")
        if len(rows) > 1:
            logger.warning(
                "Payment address %s is shared by several sales; using order %s.",
                encoded, rows[0].orderID,
            )

        row = rows[0]
        return (
            _decode_contract(row.orderID, row.contract),
            _decode_state(row.orderID, row.state),
            bool(row.funded),
            _decode_records(row.orderID, row.transactions),
        )

    def get_by_order_id(self, order_id: str) -> SaleRecord:
        """Return the fully decoded sale for ``order_id``."""
        with self._lock, self._engine.connect() as conn:
            row = conn.execute(
                select(sales_table).where(sales_table.c.orderID == order_id)
            ).first()

        if row is None:
            raise SaleNotFoundError(f"No sale for order {order_id}.")

        return SaleRecord(
            order_id=row.orderID,
            contract=_decode_contract(order_id, row.contract),
            state=_decode_state(order_id, row.state),
            read=bool(row.read),
            funded=bool(row.funded),
            transactions=_decode_records(order_id, row.transactions),
            funding_recorded=row.transactions is not None,
            timestamp=row.date or 0,
            total=row.total or 0,
            thumbnail=row.thumbnail or "",
            buyer_id=row.buyerID or "",
            buyer_blockchain_id=row.buyerBlockchainID or "",
            title=row.title or "",
            shipping_name=row.shippingName or "",
            shipping_address=row.shippingAddress or "",
            payment_address=row.paymentAddr or "",
        )

    # -- lifecycle ------------------------------------------------------------

    def close(self) -> None:
        """Release the engine's connections."""
        self._engine.dispose()

    def __enter__(self) -> SaleRecordStore:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()
