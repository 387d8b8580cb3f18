# arriendo/domain/statuses.py
from __future__ import annotations

from enum import Enum
from typing import Iterable

from .errors import InvalidState


# -----------------------------------------------------------------------------
# Closed status sets for each state machine.
# Stored as plain strings in the DB; every comparison in services goes through
# these enums so an unknown string fails loudly instead of being accepted.
# -----------------------------------------------------------------------------


class PropertyStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    PAUSED = "paused"
    LOCKED_FOR_CONTRACT = "locked_for_contract"
    RENTED = "rented"


class ContractRequestStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


class KYCStatus(str, Enum):
    PENDING = "pending"
    VERIFIED = "verified"
    REJECTED = "rejected"
    EXPIRED = "expired"


class KYCType(str, Enum):
    PERSON = "person"
    COMPANY = "company"
    PROPERTY = "property"


class VerifiedBy(str, Enum):
    SYSTEM = "system"
    MANUAL = "manual"
    THIRD_PARTY = "third_party"


class RentalContractStatus(str, Enum):
    DRAFT = "draft"
    PENDING_TENANT = "pending_tenant"
    PENDING_OWNER = "pending_owner"
    APPROVED = "approved"
    SIGNED = "signed"
    ACTIVE = "active"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


class SubscriptionStatus(str, Enum):
    ACTIVE = "active"
    CANCELED = "canceled"
    EXPIRED = "expired"
    PENDING_PAYMENT = "pending_payment"


class IntentionStatus(str, Enum):
    PENDING = "pending"
    VIEWED = "viewed"
    CONTACTED = "contacted"
    CLOSED = "closed"


class ContractMessageType(str, Enum):
    COMMENT = "comment"
    CHANGE_REQUEST = "change_request"
    APPROVAL = "approval"
    REJECTION = "rejection"
    SYSTEM = "system"


# Availability states a property may be locked from (and restored to on cancel)
LOCKABLE_PROPERTY_STATUSES = frozenset({PropertyStatus.PUBLISHED, PropertyStatus.PAUSED})

ACTIVE_REQUEST_STATUSES = frozenset({ContractRequestStatus.PENDING, ContractRequestStatus.APPROVED})

NON_TERMINAL_CONTRACT_STATUSES = frozenset(
    {
        RentalContractStatus.DRAFT,
        RentalContractStatus.PENDING_TENANT,
        RentalContractStatus.PENDING_OWNER,
        RentalContractStatus.APPROVED,
        RentalContractStatus.SIGNED,
        RentalContractStatus.ACTIVE,
    }
)

CANCELLABLE_CONTRACT_STATUSES = frozenset(
    {
        RentalContractStatus.DRAFT,
        RentalContractStatus.PENDING_TENANT,
        RentalContractStatus.PENDING_OWNER,
        RentalContractStatus.APPROVED,
    }
)

# pending_owner / signed / active exist in the enum but no operation in this
# service produces them yet; only the owner-initiated flow below is wired.
CONTRACT_TRANSITIONS: dict[RentalContractStatus, frozenset[RentalContractStatus]] = {
    RentalContractStatus.DRAFT: frozenset({RentalContractStatus.PENDING_TENANT, RentalContractStatus.CANCELLED}),
    RentalContractStatus.PENDING_TENANT: frozenset({RentalContractStatus.APPROVED, RentalContractStatus.CANCELLED}),
    RentalContractStatus.PENDING_OWNER: frozenset({RentalContractStatus.CANCELLED}),
    RentalContractStatus.APPROVED: frozenset({RentalContractStatus.CANCELLED}),
    RentalContractStatus.SIGNED: frozenset(),
    RentalContractStatus.ACTIVE: frozenset(),
    RentalContractStatus.CANCELLED: frozenset(),
    RentalContractStatus.EXPIRED: frozenset(),
}


_ACTION_LABELS = {
    "edit": "editar",
    "send": "enviar",
    "approve": "aprobar",
    "cancel": "cancelar",
}


def values(statuses: Iterable[Enum]) -> list[str]:
    return sorted(s.value for s in statuses)


def parse_contract_status(raw: str) -> RentalContractStatus:
    try:
        return RentalContractStatus(raw)
    except ValueError:
        raise InvalidState("Estado de contrato desconocido", expected=values(RentalContractStatus), actual=raw)


def require_contract_status(current: str, expected: RentalContractStatus | frozenset, action: str) -> RentalContractStatus:
    """
    Raise InvalidState unless the stored status is the expected one (or in the
    expected set). Returns the parsed enum.
    """
    status = parse_contract_status(current)
    allowed = expected if isinstance(expected, frozenset) else frozenset({expected})
    if status not in allowed:
        raise InvalidState(
            f"No se puede {_ACTION_LABELS.get(action, action)} el contrato en su estado actual",
            expected=values(allowed),
            actual=status.value,
        )
    return status


def assert_contract_transition(current: str, target: RentalContractStatus) -> None:
    status = parse_contract_status(current)
    allowed = CONTRACT_TRANSITIONS[status]
    if target not in allowed:
        raise InvalidState(
            f"Transición de contrato no permitida hacia {target.value}",
            expected=values(k for k, v in CONTRACT_TRANSITIONS.items() if target in v),
            actual=status.value,
        )


# owner follow-up only moves forward; closed is final
INTENTION_ORDER = (
    IntentionStatus.PENDING,
    IntentionStatus.VIEWED,
    IntentionStatus.CONTACTED,
    IntentionStatus.CLOSED,
)


def assert_intention_transition(current: str, target: IntentionStatus) -> None:
    status = IntentionStatus(current)
    rank = INTENTION_ORDER.index
    if status == IntentionStatus.CLOSED or rank(target) < rank(status):
        raise InvalidState(
            f"No se puede pasar el interés a {target.value}",
            expected=values(s for s in INTENTION_ORDER[: rank(target) + 1] if s != IntentionStatus.CLOSED),
            actual=status.value,
        )
