"""
Role -> capability table and the one check every handler goes through.
"""
import enum


class Role(str, enum.Enum):
    SHIPPER = "SHIPPER"
    CARRIER = "CARRIER"
    DISPATCHER = "DISPATCHER"
    ADMIN = "ADMIN"
    SUPER_ADMIN = "SUPER_ADMIN"


class Capability(str, enum.Enum):
    PREVIEW_FEES = "preview_fees"
    ASSIGN_CORRIDOR = "assign_corridor"
    CHECK_WALLETS = "check_wallets"
    ASSIGN_LOAD = "assign_load"
    UPDATE_LOAD_STATUS = "update_load_status"
    VERIFY_POD = "verify_pod"
    TRIGGER_SETTLEMENT = "trigger_settlement"
    REFUND_FEES = "refund_fees"
    MANAGE_DISPUTES = "manage_disputes"


_ALL = frozenset(Capability)

ROLE_CAPABILITIES: dict[Role, frozenset[Capability]] = {
    Role.SHIPPER: frozenset({
        Capability.PREVIEW_FEES,
        Capability.ASSIGN_CORRIDOR,
        Capability.CHECK_WALLETS,
        Capability.UPDATE_LOAD_STATUS,
        Capability.VERIFY_POD,
    }),
    Role.CARRIER: frozenset({
        Capability.PREVIEW_FEES,
        Capability.CHECK_WALLETS,
        Capability.UPDATE_LOAD_STATUS,
    }),
    Role.DISPATCHER: frozenset({
        Capability.PREVIEW_FEES,
        Capability.ASSIGN_CORRIDOR,
        Capability.CHECK_WALLETS,
        Capability.ASSIGN_LOAD,
        Capability.UPDATE_LOAD_STATUS,
    }),
    Role.ADMIN: _ALL,
    Role.SUPER_ADMIN: _ALL,
}

ADMIN_ROLES = frozenset({Role.ADMIN, Role.SUPER_ADMIN})


def parse_role(value: str | Role | None) -> Role | None:
    if isinstance(value, Role):
        return value
    try:
        return Role((value or "").strip().upper())
    except ValueError:
        return None


def has_capability(role: str | Role | None, capability: Capability) -> bool:
    parsed = parse_role(role)
    if parsed is None:
        return False
    return capability in ROLE_CAPABILITIES.get(parsed, frozenset())


def is_admin(role: str | Role | None) -> bool:
    return parse_role(role) in ADMIN_ROLES
