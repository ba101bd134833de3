"""Salesbook — vendor-side order records for a peer-to-peer marketplace.

Stores Ricardian contracts, order state and on-chain funding evidence,
keyed by order id and by payment address.
"""

__version__ = "0.1.0"

from salesbook.address import Address, encode_address
from salesbook.config import SalesbookConfig, create_engine_from_config
from salesbook.constants import OrderState
from salesbook.contract import (
    BuyerID,
    BuyerOrder,
    ContractDecodeError,
    Image,
    Item,
    Listing,
    Payment,
    PaymentMethod,
    RicardianContract,
    Shipping,
    VendorOrderConfirmation,
)
from salesbook.sales import (
    IncompleteContractError,
    SaleDecodeError,
    SaleNotFoundError,
    SaleRecord,
    SaleRecordStore,
    SaleStoreError,
)
from salesbook.transactions import TransactionDecodeError, TransactionRecord

__all__ = [
    "Address",
    "encode_address",
    "SalesbookConfig",
    "create_engine_from_config",
    "OrderState",
    "BuyerID",
    "BuyerOrder",
    "ContractDecodeError",
    "Image",
    "Item",
    "Listing",
    "Payment",
    "PaymentMethod",
    "RicardianContract",
    "Shipping",
    "VendorOrderConfirmation",
    "IncompleteContractError",
    "SaleDecodeError",
    "SaleNotFoundError",
    "SaleRecord",
    "SaleRecordStore",
    "SaleStoreError",
    "TransactionDecodeError",
    "TransactionRecord",
]
