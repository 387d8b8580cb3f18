# arriendo/schemas.py
from __future__ import annotations

from datetime import date, datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


# -------------------- Auth --------------------

class PrincipalOut(BaseModel):
    user_id: str
    email: str
    user_type: str


class DevTokenIn(BaseModel):
    user_id: str


class TokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"


# -------------------- Plans --------------------

class PlanOut(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    user_type: str
    price_monthly: float
    price_currency: str
    features: list[str] = Field(default_factory=list)
    max_properties: Optional[int] = None
    includes_price_insights: bool = False


class ActivePlanOut(BaseModel):
    plan_id: str
    plan_name: str
    includes_price_insights: bool
    max_properties: Optional[int] = None
    expires_at: Optional[datetime] = None
    is_pro: bool


# -------------------- KYC --------------------

class KYCStartIn(BaseModel):
    # defaults to the caller
    user_id: Optional[str] = None
    verification_type: str

    document_type: Optional[str] = None
    document_number: Optional[str] = None
    document_front_url: Optional[str] = None
    document_back_url: Optional[str] = None
    selfie_url: Optional[str] = None

    company_name: Optional[str] = None
    company_nit: Optional[str] = None
    company_document_url: Optional[str] = None

    property_id: Optional[str] = None
    property_document_type: Optional[str] = None
    property_document_url: Optional[str] = None


class KYCVerificationOut(BaseModel):
    id: str
    user_id: str
    verification_type: str
    status: str
    effective_status: Optional[str] = None

    document_type: Optional[str] = None
    document_number: Optional[str] = None
    company_name: Optional[str] = None
    company_nit: Optional[str] = None
    property_id: Optional[str] = None
    property_document_type: Optional[str] = None

    verified_at: Optional[datetime] = None
    verified_by: Optional[str] = None
    rejection_reason: Optional[str] = None
    expires_at: Optional[datetime] = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class KYCStatusOut(BaseModel):
    user_id: str
    verification_type: str
    is_verified: bool
    verification: Optional[KYCVerificationOut] = None


# -------------------- Contract requests --------------------

class ContractRequestCreate(BaseModel):
    property_id: str
    # defaults to the caller
    tenant_id: Optional[str] = None


class ContractRequestOut(BaseModel):
    id: str
    property_id: str
    tenant_id: str
    owner_id: str
    status: str
    requested_at: datetime
    expires_at: Optional[datetime] = None
    tenant_kyc_status: str
    tenant_kyc_verified_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    model_config = ConfigDict(from_attributes=True)


class ContractRequestDetailOut(ContractRequestOut):
    eligible_for_contract: bool
    property_title: str
    property_city: str
    property_neighborhood: Optional[str] = None
    property_price: float
    tenant_name: Optional[str] = None
    tenant_email: str
    owner_name: Optional[str] = None
    owner_email: str


class ActiveRequestOut(BaseModel):
    property_id: str
    has_active_request: bool


# -------------------- Rental contracts --------------------

class StartContractIn(BaseModel):
    property_id: str
    tenant_id: str
    contract_request_id: Optional[str] = None
    monthly_rent: Optional[float] = None
    deposit_amount: Optional[float] = None
    contract_duration_months: Optional[int] = None
    start_date: Optional[date] = None
    template_id: Optional[str] = None


class DisclaimerIn(BaseModel):
    disclaimer_accepted: bool = False


class ClauseIn(BaseModel):
    title: str
    content: str


class ContractContentIn(BaseModel):
    content: str
    clauses: Optional[list[ClauseIn]] = None


class RentalContractOut(BaseModel):
    id: str
    contract_request_id: Optional[str] = None
    property_id: str
    tenant_id: str
    owner_id: str
    status: str
    version: int
    contract_template_id: Optional[str] = None
    contract_content: str
    contract_pdf_url: Optional[str] = None
    clauses: list[dict[str, Any]] = Field(default_factory=list)

    monthly_rent: float
    deposit_amount: Optional[float] = None
    contract_duration_months: Optional[int] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    owner_approved_at: Optional[datetime] = None
    tenant_approved_at: Optional[datetime] = None
    legal_disclaimer_accepted_at: Optional[datetime] = None
    tenant_disclaimer_accepted_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    property_title: str
    property_city: str
    property_neighborhood: Optional[str] = None
    property_status: Optional[str] = None
    tenant_name: Optional[str] = None
    tenant_email: str
    owner_name: Optional[str] = None
    owner_email: str


class ApproveAndSendOut(BaseModel):
    id: str
    status: str
    legal_disclaimer_accepted_at: datetime
    updated_at: datetime
    notification_sent: bool


class TenantApproveOut(BaseModel):
    id: str
    status: str
    tenant_approved_at: datetime
    tenant_disclaimer_accepted_at: datetime
    updated_at: datetime
    notification_sent: bool


class CancelContractOut(BaseModel):
    contract_id: str
    contract_status: str
    property_id: str
    property_status: str
    updated_at: datetime


# -------------------- Contract messages --------------------

class ChangeRequestData(BaseModel):
    field: str
    old_value: Any = None
    new_value: Any = None


class ContractMessageIn(BaseModel):
    content: str
    message_type: str = "comment"
    change_request_data: Optional[ChangeRequestData] = None


class ContractMessageOut(BaseModel):
    id: str
    contract_id: str
    sender_id: str
    message_type: str
    content: str
    change_request_data: Optional[dict[str, Any]] = None
    is_read: bool
    created_at: datetime
    sender_name: Optional[str] = None
    sender_email: Optional[str] = None


class CountOut(BaseModel):
    count: int


# -------------------- Property intentions --------------------

class IntentionCreate(BaseModel):
    property_id: str
    # defaults to the caller
    tenant_id: Optional[str] = None


class IntentionStatusIn(BaseModel):
    status: str


class IntentionOut(BaseModel):
    id: str
    property_id: str
    tenant_id: str
    owner_id: str
    status: str
    created_at: datetime
    updated_at: datetime
    model_config = ConfigDict(from_attributes=True)


class IntentionDetailOut(IntentionOut):
    property_title: str
    property_city: str
    property_neighborhood: Optional[str] = None
    property_price: float
    tenant_name: Optional[str] = None
    tenant_email: str


class IntentionExistsOut(BaseModel):
    property_id: str
    has_intention: bool


# -------------------- Notifications --------------------

class NotificationOut(BaseModel):
    id: str
    kind: str
    title: str
    message: str
    related_entity_type: Optional[str] = None
    related_entity_id: Optional[str] = None
    is_read: bool
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


# -------------------- Templates --------------------

class TemplateOut(BaseModel):
    id: str
    name: str
    description: str
    content: str


class TemplatePreviewIn(BaseModel):
    template_id: Optional[str] = None
    bindings: dict[str, str] = Field(default_factory=dict)


class TemplatePreviewOut(BaseModel):
    template_id: str
    content: str
