# arriendo/services/kyc_providers.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..config import settings
from ..domain.statuses import KYCType, VerifiedBy
from ..models import KYCVerification


@dataclass(frozen=True)
class VerificationDecision:
    approved: bool
    verified_by: VerifiedBy
    rejection_reason: Optional[str] = None


REQUIRED_FIELDS: dict[KYCType, tuple[str, ...]] = {
    KYCType.PERSON: ("document_type", "document_number", "document_front_url", "selfie_url"),
    KYCType.COMPANY: ("company_name", "company_nit", "company_document_url"),
    KYCType.PROPERTY: ("property_id", "property_document_type", "property_document_url"),
}


def missing_fields(verification_type: KYCType, values: dict) -> list[str]:
    out = []
    for f in REQUIRED_FIELDS[verification_type]:
        v = values.get(f)
        if v is None or (isinstance(v, str) and not v.strip()):
            out.append(f)
    return out


class VerificationProvider:
    """
    Port for whatever actually reviews a submitted KYC record.
    Implementations must not write to the DB; the registry applies the decision.
    """

    name = "base"

    def review(self, record: KYCVerification) -> VerificationDecision:
        raise NotImplementedError


class MockVerificationProvider(VerificationProvider):
    """
    Approves any submission whose required fields are present.
    No document or biometric validation happens here.
    """

    name = "mock"

    def review(self, record: KYCVerification) -> VerificationDecision:
        vtype = KYCType(record.verification_type)
        fields = {f: getattr(record, f, None) for f in REQUIRED_FIELDS[vtype]}
        missing = missing_fields(vtype, fields)
        if missing:
            return VerificationDecision(
                approved=False,
                verified_by=VerifiedBy.SYSTEM,
                rejection_reason=f"missing fields: {', '.join(missing)}",
            )
        return VerificationDecision(approved=True, verified_by=VerifiedBy.SYSTEM)


_PROVIDERS: dict[str, VerificationProvider] = {
    MockVerificationProvider.name: MockVerificationProvider(),
}


def register_provider(provider: VerificationProvider) -> None:
    _PROVIDERS[provider.name] = provider


def get_provider(name: Optional[str] = None) -> VerificationProvider:
    key = (name or settings.kyc_provider or "mock").strip().lower()
    try:
        return _PROVIDERS[key]
    except KeyError:
        raise RuntimeError(f"unknown kyc provider: {key}")
