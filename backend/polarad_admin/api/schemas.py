from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, EmailStr, Field


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class AdminResponse(BaseModel):
    id: int
    email: str
    name: str
    role: str


# ---------------------------------------------------------------------------
# Common
# ---------------------------------------------------------------------------


class StatusLogResponse(BaseModel):
    id: int
    from_status: str | None
    to_status: str
    changed_by: str
    note: str | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


# ---------------------------------------------------------------------------
# Submission
# ---------------------------------------------------------------------------


class SubmissionResponse(BaseModel):
    id: int
    user_id: int
    brand_name: str | None
    contact_phone: str | None
    contact_email: str | None
    delivery_address: str | None
    website_style: str | None
    website_color: str | None
    blog_design_note: str | None
    additional_note: str | None
    status: str
    is_complete: bool
    rejection_reason: str | None
    submitted_at: datetime | None
    reviewed_at: datetime | None
    reviewed_by: int | None
    slack_channel_id: str | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class SubmissionListResponse(BaseModel):
    items: list[SubmissionResponse]
    total: int
    stats: dict[str, int]


class SubmissionApproveRequest(BaseModel):
    workflow_types: list[str] | None = None


class SubmissionRejectRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=2000)


# ---------------------------------------------------------------------------
# Workflow
# ---------------------------------------------------------------------------


class WorkflowResponse(BaseModel):
    id: int
    user_id: int
    type: str
    status: str
    design_url: str | None
    final_url: str | None
    courier: str | None
    tracking_number: str | None
    revision_note: str | None
    revision_count: int
    admin_note: str | None
    submitted_at: datetime | None
    design_started_at: datetime | None
    design_uploaded_at: datetime | None
    order_requested_at: datetime | None
    order_approved_at: datetime | None
    completed_at: datetime | None
    shipped_at: datetime | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class WorkflowDetailResponse(WorkflowResponse):
    logs: list[StatusLogResponse] = []
    allowed_statuses: list[str] = []


class WorkflowListResponse(BaseModel):
    items: list[WorkflowResponse]
    total: int
    stats: dict[str, int]


class WorkflowEnsureRequest(BaseModel):
    user_id: int
    types: list[str] | None = None


class WorkflowUpdateRequest(BaseModel):
    status: str | None = None
    note: str | None = Field(None, max_length=2000)
    design_url: str | None = Field(None, max_length=1024)
    final_url: str | None = Field(None, max_length=1024)
    courier: str | None = Field(None, max_length=100)
    tracking_number: str | None = Field(None, max_length=100)
    admin_note: str | None = None
    revision_note: str | None = None


# ---------------------------------------------------------------------------
# Design
# ---------------------------------------------------------------------------


class DesignFeedbackResponse(BaseModel):
    id: int
    version_id: int
    author_id: int | None
    author_type: str
    author_name: str
    content: str
    created_at: datetime

    model_config = {"from_attributes": True}


class DesignVersionResponse(BaseModel):
    id: int
    design_id: int
    version: int
    url: str
    note: str | None
    uploaded_by: int | None
    created_at: datetime

    model_config = {"from_attributes": True}


class DesignVersionDetailResponse(DesignVersionResponse):
    feedbacks: list[DesignFeedbackResponse] = []


class DesignResponse(BaseModel):
    id: int
    workflow_id: int
    status: str
    current_version: int
    approved_version: int | None
    approved_at: datetime | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class DesignDetailResponse(DesignResponse):
    versions: list[DesignVersionDetailResponse] = []
    allowed_statuses: list[str] = []


class DesignListResponse(BaseModel):
    items: list[DesignResponse]
    total: int
    stats: dict[str, int]


class DesignCreate(BaseModel):
    workflow_id: int
    url: str = Field(..., min_length=1, max_length=1024)
    note: str | None = None


class DesignVersionCreate(BaseModel):
    url: str = Field(..., min_length=1, max_length=1024)
    note: str | None = None
    notify: bool = False


class DesignStatusUpdate(BaseModel):
    status: str
    note: str | None = None
    notify: bool = True


class DesignFeedbackCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=5000)
    version_id: int | None = None


# ---------------------------------------------------------------------------
# Package / Contract
# ---------------------------------------------------------------------------


class PackageResponse(BaseModel):
    id: int
    name: str
    display_name: str
    price: Decimal
    is_active: bool

    model_config = {"from_attributes": True}


class ContractCreate(BaseModel):
    user_id: int
    package_id: int
    contract_period: int = Field(12, ge=1, le=120)
    monthly_fee: Decimal | None = Field(None, ge=0)
    setup_fee: Decimal = Field(Decimal(0), ge=0)
    is_promotion: bool = False
    additional_notes: str | None = None


class ContractSubmitRequest(BaseModel):
    company_name: str | None = None
    ceo_name: str | None = None
    business_number: str | None = None
    address: str | None = None
    contact_name: str | None = None
    contact_phone: str | None = None
    contact_email: str | None = None
    client_signature: str | None = None


class ContractRejectRequest(BaseModel):
    reason: str | None = Field(None, max_length=2000)


class ContractStatusUpdate(BaseModel):
    status: str
    note: str | None = None


class ContractResponse(BaseModel):
    id: int
    contract_number: str
    user_id: int
    package_id: int
    status: str
    contract_period: int
    monthly_fee: Decimal
    setup_fee: Decimal
    total_amount: Decimal
    is_promotion: bool
    additional_notes: str | None
    company_name: str | None
    ceo_name: str | None
    business_number: str | None
    contact_name: str | None
    contact_phone: str | None
    contact_email: str | None
    signed_at: datetime | None
    approved_at: datetime | None
    rejected_at: datetime | None
    reject_reason: str | None
    start_date: date | None
    end_date: date | None
    email_sent_at: datetime | None
    created_at: datetime

    model_config = {"from_attributes": True}


class ContractDetailResponse(ContractResponse):
    logs: list[StatusLogResponse] = []
    allowed_statuses: list[str] = []


class ContractListResponse(BaseModel):
    items: list[ContractResponse]
    total: int
    stats: dict[str, int]


# ---------------------------------------------------------------------------
# Communications
# ---------------------------------------------------------------------------


class MessageResponse(BaseModel):
    id: int
    thread_id: int
    author_id: int | None
    author_type: str
    author_name: str
    content: str
    attachments: list | None
    is_read_by_admin: bool
    is_read_by_user: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class ThreadResponse(BaseModel):
    id: int
    user_id: int
    title: str
    category: str | None
    status: str
    last_reply_at: datetime | None
    expected_completion_date: datetime | None
    created_at: datetime

    model_config = {"from_attributes": True}


class ThreadDetailResponse(ThreadResponse):
    messages: list[MessageResponse] = []


class ThreadListResponse(BaseModel):
    items: list[ThreadResponse]
    total: int
    stats: dict[str, int]


class ThreadUpdate(BaseModel):
    status: str | None = None
    expected_completion_date: datetime | None = None


class ReplyCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=5000)
    attachments: list[dict] | None = None
    expected_completion_date: datetime | None = None
    change_status: str | None = None


# ---------------------------------------------------------------------------
# Tokens / Backfill
# ---------------------------------------------------------------------------


class TokenRefreshRequest(BaseModel):
    access_token: str | None = None
    expires_at: datetime | None = None
    success: bool = True
    error_message: str | None = None


class TokenRefreshResponse(BaseModel):
    id: int
    client_id: int
    expires_at: datetime | None
    success: bool
    error_message: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


class BackfillRequest(BaseModel):
    client_id: int
    days: int | None = Field(None, ge=1, le=1095)
    start_date: date | None = None
    end_date: date | None = None


# ---------------------------------------------------------------------------
# Clients / Notifications
# ---------------------------------------------------------------------------


class ClientCreate(BaseModel):
    client_name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr | None = None
    phone: str | None = Field(None, max_length=50)
    contact_name: str | None = Field(None, max_length=100)
    contact_phone: str | None = Field(None, max_length=50)
    meta_ad_account_id: str | None = Field(None, max_length=64)
    meta_access_token: str | None = None
    telegram_chat_id: str | None = Field(None, max_length=64)
    telegram_enabled: bool = False
    plan_type: str = "FREE"
    memo: str | None = None
    service_start: date | None = None
    service_end: date | None = None
    unlimited_service: bool = False


class ClientUpdate(BaseModel):
    client_name: str | None = Field(None, max_length=255)
    email: EmailStr | None = None
    phone: str | None = Field(None, max_length=50)
    contact_name: str | None = Field(None, max_length=100)
    contact_phone: str | None = Field(None, max_length=50)
    meta_ad_account_id: str | None = Field(None, max_length=64)
    meta_access_token: str | None = None
    auth_status: str | None = None
    telegram_chat_id: str | None = Field(None, max_length=64)
    telegram_enabled: bool | None = None
    plan_type: str | None = None
    is_active: bool | None = None
    memo: str | None = None
    token_expires_at: datetime | None = None
    service_start: date | None = None
    service_end: date | None = None


class ClientResponse(BaseModel):
    id: int
    client_name: str
    email: str | None
    phone: str | None
    contact_name: str | None
    contact_phone: str | None
    meta_ad_account_id: str | None
    has_access_token: bool
    auth_status: str
    token_expires_at: datetime | None
    service_start: date | None
    service_end: date | None
    telegram_chat_id: str | None
    telegram_enabled: bool
    plan_type: str
    is_active: bool
    memo: str | None
    created_at: datetime | None
    latest_data_date: date | None = None
    data_count: int | None = None


class NotificationLogResponse(BaseModel):
    id: int
    client_id: int | None
    notification_type: str
    channel: str
    recipient: str | None
    message: str
    status: str
    error_message: str | None
    sent_at: datetime | None

    model_config = {"from_attributes": True}


class NotificationLogListItem(NotificationLogResponse):
    client_name: str | None = None


class ClientDetailResponse(ClientResponse):
    notification_logs: list[NotificationLogResponse] = []
    token_refresh_logs: list[TokenRefreshResponse] = []


class ClientListResponse(BaseModel):
    items: list[ClientResponse]
    total: int
    stats: dict[str, int]


class NotificationListResponse(BaseModel):
    items: list[NotificationLogListItem]
    total: int
    today_stats: dict[str, int]


class NotificationSendRequest(BaseModel):
    client_id: int
    notification_type: str
    message: str = Field(..., min_length=1, max_length=4000)
    channel: str = "TELEGRAM"
