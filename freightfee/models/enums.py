"""
Status and type enumerations shared by models, services and routes.
Stored as plain strings; compare against members or their values.
"""
import enum


class FeeStatus(str, enum.Enum):
    PENDING = "PENDING"
    DEDUCTED = "DEDUCTED"
    WAIVED = "WAIVED"
    REFUNDED = "REFUNDED"


# A party fee in one of these states is never charged again.
SETTLED_FEE_STATUSES = frozenset({FeeStatus.DEDUCTED, FeeStatus.WAIVED})


class SettlementStatus(str, enum.Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    DISPUTE = "DISPUTE"


class AccountType(str, enum.Enum):
    SHIPPER_WALLET = "SHIPPER_WALLET"
    CARRIER_WALLET = "CARRIER_WALLET"
    PLATFORM_REVENUE = "PLATFORM_REVENUE"


class JournalTransactionType(str, enum.Enum):
    SERVICE_FEE_DEDUCT = "SERVICE_FEE_DEDUCT"
    SERVICE_FEE_REFUND = "SERVICE_FEE_REFUND"


class CorridorDirection(str, enum.Enum):
    ONE_WAY = "ONE_WAY"
    ROUND_TRIP = "ROUND_TRIP"
    BIDIRECTIONAL = "BIDIRECTIONAL"


class Party(str, enum.Enum):
    SHIPPER = "shipper"
    CARRIER = "carrier"
