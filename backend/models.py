from pydantic import AfterValidator, BaseModel, BeforeValidator, EmailStr, Field, ConfigDict, TypeAdapter, ValidationError
from pydantic.alias_generators import to_camel
from typing import Annotated, Optional, Dict, Any
from datetime import datetime, timezone
from enum import Enum
import uuid

# ============================================================================
# ENUMS (System Constants)
# ============================================================================

class CaseStatus(str, Enum):
    PENDING = "pending"
    ADMITTED = "admitted"
    DISMISSED = "dismissed"
    ALLOWED = "allowed"
    DISPOSED = "disposed"
    WITHDRAWN = "withdrawn"
    COMPROMISED = "compromised"
    STAYED = "stayed"
    APPEAL_FILED = "appeal_filed"

class SubscriptionPlan(str, Enum):
    FREE = "free"
    STARTER = "starter"
    PROFESSIONAL = "professional"
    ENTERPRISE = "enterprise"

class SubscriptionStatus(str, Enum):
    ACTIVE = "active"
    TRIAL = "trial"
    EXPIRED = "expired"
    CANCELLED = "cancelled"

class UserRole(str, Enum):
    OWNER = "owner"
    ADMIN = "admin"
    LAWYER = "lawyer"
    ASSISTANT = "assistant"
    VIEWER = "viewer"

class AuditAction(str, Enum):
    # Cases
    CASE_CREATED = "CASE_CREATED"
    CASE_UPDATED = "CASE_UPDATED"
    CASE_DELETED = "CASE_DELETED"
    CASES_MIGRATED = "CASES_MIGRATED"

    # Clients & payments
    CLIENT_CREATED = "CLIENT_CREATED"
    CLIENT_UPDATED = "CLIENT_UPDATED"
    CLIENT_DELETED = "CLIENT_DELETED"
    CLIENTS_MIGRATED = "CLIENTS_MIGRATED"
    PAYMENT_CREATED = "PAYMENT_CREATED"
    PAYMENT_UPDATED = "PAYMENT_UPDATED"
    PAYMENT_DELETED = "PAYMENT_DELETED"

    # Organizations
    ORG_CREATED = "ORG_CREATED"
    ORG_UPDATED = "ORG_UPDATED"
    SUBSCRIPTION_CHANGED = "SUBSCRIPTION_CHANGED"

    # Users
    USER_CREATED = "USER_CREATED"
    USER_UPDATED = "USER_UPDATED"
    USER_ORG_ASSIGNED = "USER_ORG_ASSIGNED"


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string (the stored timestamp format)."""
    return datetime.now(timezone.utc).isoformat()


def new_record_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12].upper()}"


# ============================================================================
# RECORD MODELS
# ============================================================================
# Stored with snake_case keys (model_dump()), served with camelCase keys
# (model_dump(by_alias=True)).

class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")

    def to_response(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class RecordEnvelope(CamelModel):
    """Fields shared by every user-owned record."""
    id: str
    user_id: str
    organization_id: Optional[str] = None  # None = legacy record, owner-scoped only
    created_at: str = Field(default_factory=utc_now_iso)
    updated_at: str = Field(default_factory=utc_now_iso)


class CaseRecord(RecordEnvelope):
    title: str
    description: str
    case_number: str = ""
    case_category: str = ""  # O.S, C.C, S.C, Crl.P, W.P ...
    court: str = ""
    court_complex: str = ""
    bench_judge_name: str = ""
    plaintiff: str = ""
    defendant: str = ""
    petitioner: str = ""
    respondent: str = ""
    complainant: str = ""
    accused: str = ""
    advocate_for_petitioner: str = ""
    advocate_for_respondent: str = ""
    public_prosecutor: str = ""
    senior_counsel: str = ""
    vakalat_filed: bool = False
    current_stage: str = ""
    last_hearing_date: str = ""
    next_hearing_date: str = ""
    hearing_purpose: str = ""
    purpose_of_hearing_stage: str = ""
    plaintiff_case: str = ""
    defendant_case: str = ""
    work_to_be_done: str = ""
    notes: str = ""
    case_type: str = ""
    status: CaseStatus = CaseStatus.PENDING
    filing_date: str = ""


class ClientRecord(RecordEnvelope):
    name: str
    email: str = ""
    phone: str = ""
    address: str = ""
    notes: str = ""


class PaymentRecord(RecordEnvelope):
    client_id: str
    amount: float
    date: str
    method: str = ""
    description: str = ""


class OrganizationRecord(CamelModel):
    id: str
    name: str
    email: str
    phone: str = ""
    address: str = ""
    domain: str = ""
    logo: str = ""
    subscription_plan: SubscriptionPlan = SubscriptionPlan.FREE
    subscription_status: SubscriptionStatus = SubscriptionStatus.ACTIVE
    subscription_start_date: str = Field(default_factory=utc_now_iso)
    subscription_end_date: Optional[str] = None
    trial_end_date: Optional[str] = None
    max_users: int
    max_cases: int
    current_users: int = 0
    current_cases: int = 0
    created_by: str
    is_default: bool = False
    created_at: str = Field(default_factory=utc_now_iso)
    updated_at: str = Field(default_factory=utc_now_iso)


class UserRecord(CamelModel):
    id: str
    email: str = ""
    name: str = ""
    firm_name: str = ""
    logo_url: str = ""
    organization_id: Optional[str] = None
    role: UserRole = UserRole.LAWYER
    created_at: str = Field(default_factory=utc_now_iso)
    updated_at: str = Field(default_factory=utc_now_iso)


# ============================================================================
# REQUEST SCHEMAS
# ============================================================================

class CaseFields(CamelModel):
    """Optional case detail fields accepted by both create and update."""
    case_number: Optional[str] = None
    case_category: Optional[str] = None
    court: Optional[str] = None
    court_complex: Optional[str] = None
    bench_judge_name: Optional[str] = None
    plaintiff: Optional[str] = None
    defendant: Optional[str] = None
    petitioner: Optional[str] = None
    respondent: Optional[str] = None
    complainant: Optional[str] = None
    accused: Optional[str] = None
    advocate_for_petitioner: Optional[str] = None
    advocate_for_respondent: Optional[str] = None
    public_prosecutor: Optional[str] = None
    senior_counsel: Optional[str] = None
    vakalat_filed: Optional[bool] = None
    current_stage: Optional[str] = None
    last_hearing_date: Optional[str] = None
    next_hearing_date: Optional[str] = None
    hearing_purpose: Optional[str] = None
    purpose_of_hearing_stage: Optional[str] = None
    plaintiff_case: Optional[str] = None
    defendant_case: Optional[str] = None
    work_to_be_done: Optional[str] = None
    notes: Optional[str] = None
    case_type: Optional[str] = None
    status: Optional[CaseStatus] = None
    filing_date: Optional[str] = None


def _blank_to_none(value: Any) -> Any:
    return value or None


# "" means no organization, same as omitting the field
OrganizationRef = Annotated[Optional[str], BeforeValidator(_blank_to_none)]


class CreateCaseRequest(CaseFields):
    title: str = Field(min_length=2)
    description: str = Field(min_length=2)
    user_id: str = Field(min_length=1)
    organization_id: OrganizationRef = None


class UpdateCaseRequest(CaseFields):
    id: str = Field(min_length=1)
    user_id: str = Field(min_length=1)
    title: Optional[str] = Field(default=None, min_length=2)
    description: Optional[str] = Field(default=None, min_length=2)


class DeleteCaseRequest(CamelModel):
    id: str = Field(min_length=1)
    user_id: str = Field(min_length=1)
    organization_id: OrganizationRef = None


class MigrateRequest(CamelModel):
    user_id: str = Field(min_length=1)
    organization_id: str = Field(min_length=1)


_email_adapter = TypeAdapter(EmailStr)


def _email_or_blank(value: Optional[str]) -> Optional[str]:
    # "" is accepted and stored as "", anything else must be an email
    if value in (None, ""):
        return value
    try:
        return _email_adapter.validate_python(value)
    except ValidationError:
        raise ValueError("value is not a valid email address")


BlankableEmail = Annotated[Optional[str], AfterValidator(_email_or_blank)]


class CreateClientRequest(CamelModel):
    name: str = Field(min_length=2)
    email: BlankableEmail = None
    phone: Optional[str] = None
    address: Optional[str] = None
    notes: Optional[str] = None
    user_id: str = Field(min_length=1)
    organization_id: OrganizationRef = None


class UpdateClientRequest(CamelModel):
    user_id: str = Field(min_length=1)
    name: Optional[str] = Field(default=None, min_length=2)
    email: BlankableEmail = None
    phone: Optional[str] = None
    address: Optional[str] = None
    notes: Optional[str] = None


class CreatePaymentRequest(CamelModel):
    amount: float = Field(gt=0)
    date: str = Field(min_length=1)
    method: Optional[str] = None
    description: Optional[str] = None
    user_id: str = Field(min_length=1)


class UpdatePaymentRequest(CamelModel):
    user_id: str = Field(min_length=1)
    amount: Optional[float] = Field(default=None, gt=0)
    date: Optional[str] = Field(default=None, min_length=1)
    method: Optional[str] = None
    description: Optional[str] = None


class CreateOrganizationRequest(CamelModel):
    name: str = Field(min_length=2)
    email: EmailStr
    phone: Optional[str] = None
    address: Optional[str] = None
    domain: Optional[str] = None
    subscription_plan: SubscriptionPlan = SubscriptionPlan.FREE
    created_by: str = Field(min_length=1)


class UpdateOrganizationRequest(CamelModel):
    """Administrative override of organization fields."""
    name: Optional[str] = Field(default=None, min_length=2)
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    domain: Optional[str] = None
    logo: Optional[str] = None
    subscription_plan: Optional[SubscriptionPlan] = None
    subscription_status: Optional[SubscriptionStatus] = None
    subscription_end_date: Optional[str] = None
    trial_end_date: Optional[str] = None


class UpdateSubscriptionRequest(CamelModel):
    subscription_plan: SubscriptionPlan
    subscription_status: Optional[SubscriptionStatus] = None


class UpdateUserProfileRequest(CamelModel):
    name: Optional[str] = None
    firm_name: Optional[str] = None
    logo_url: Optional[str] = None


# ============================================================================
# AUDIT
# ============================================================================

class AuditLog(BaseModel):
    model_config = ConfigDict(extra="ignore")

    audit_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    action: AuditAction
    actor_id: Optional[str] = None
    organization_id: Optional[str] = None
    resource_type: Optional[str] = None
    resource_id: Optional[str] = None
    before_state: Optional[Dict[str, Any]] = None
    after_state: Optional[Dict[str, Any]] = None
    metadata: Optional[Dict[str, Any]] = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
