"""
Tavara.care Coordination Service - API Schemas

Pydantic models for request/response validation and documentation.
All API contracts are defined here for type safety and OpenAPI generation.
"""

from datetime import date, datetime
from enum import Enum
from typing import Any, List, Optional, Dict

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Role(str, Enum):
    """Platform roles."""
    FAMILY = "family"
    PROFESSIONAL = "professional"
    COMMUNITY = "community"
    ADMIN = "admin"


class AssignmentType(str, Enum):
    MANUAL = "manual"
    CARE_TEAM = "care_team"
    AUTOMATIC = "automatic"


class ORMModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# ----------------------------------------------------------------------
# Profiles
# ----------------------------------------------------------------------

class ProfileFields(BaseModel):
    """Editable profile columns; unset fields are left untouched on update."""
    full_name: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone_number: Optional[str] = None
    location: Optional[str] = None
    address: Optional[str] = None
    avatar_url: Optional[str] = None
    care_types: Optional[List[str]] = None
    care_services: Optional[List[str]] = None
    care_schedule: Optional[str] = Field(default=None, description="Comma-separated shift option ids")
    custom_schedule: Optional[str] = None
    care_recipient_name: Optional[str] = None
    relationship_to_recipient: Optional[str] = None
    professional_type: Optional[str] = None
    years_of_experience: Optional[str] = Field(default=None, description="Free text such as '5+ years'")
    certifications: Optional[List[str]] = None
    hourly_rate: Optional[str] = Field(default=None, description="Free text such as '$35/hr'")
    expected_rate: Optional[str] = None
    work_type: Optional[str] = None
    bio: Optional[str] = None
    languages: Optional[List[str]] = None
    background_check: Optional[bool] = None
    legally_authorized: Optional[bool] = None
    commute_mode: Optional[str] = None
    additional_notes: Optional[str] = None
    availability: Optional[List[str]] = None
    available_for_matching: Optional[bool] = None
    training_completed: Optional[bool] = None
    orientation_scheduled: Optional[bool] = None
    contribution_interests: Optional[List[str]] = None
    joined_activities: Optional[List[str]] = None
    trial_status: Optional[str] = None
    care_model: Optional[str] = None

    @field_validator("hourly_rate", "expected_rate", mode="before")
    @classmethod
    def rate_as_text(cls, v):
        """Rates may be sent as numbers; they are stored as text."""
        if isinstance(v, (int, float)):
            return str(v)
        return v


class ProfileCreate(ProfileFields):
    role: Role


class ProfileUpdate(ProfileFields):
    pass


class AvailabilityUpdate(BaseModel):
    available_for_matching: bool


class ProfileResponse(ORMModel):
    id: str
    role: str
    full_name: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone_number: Optional[str] = None
    location: Optional[str] = None
    care_types: Optional[List[str]] = None
    care_schedule: Optional[str] = None
    professional_type: Optional[str] = None
    years_of_experience: Optional[str] = None
    hourly_rate: Optional[str] = None
    expected_rate: Optional[str] = None
    available_for_matching: Optional[bool] = None
    visit_scheduling_status: Optional[str] = None
    visit_payment_status: Optional[str] = None
    trial_status: Optional[str] = None
    created_at: Optional[datetime] = None


class CareAssessmentRequest(BaseModel):
    care_types: Optional[List[str]] = None
    schedule: Optional[str] = None
    details: Optional[Dict[str, Any]] = None


class CareRecipientRequest(BaseModel):
    full_name: Optional[str] = None
    birth_year: Optional[int] = Field(default=None, ge=1900, le=2100)
    story: Optional[str] = None


class DocumentRequest(BaseModel):
    document_type: str = Field(..., min_length=1)
    file_path: str = Field(..., min_length=1)


# ----------------------------------------------------------------------
# Matching & admin
# ----------------------------------------------------------------------

class AdminAssignmentRequest(BaseModel):
    family_user_id: str
    caregiver_id: str
    admin_match_score: Optional[float] = Field(default=None, ge=0, le=100)
    reason: Optional[str] = None
    notes: Optional[str] = None


class DeactivateAssignmentRequest(BaseModel):
    reason: str = Field(..., min_length=1)


class AutomaticAssignmentRequest(BaseModel):
    family_user_id: Optional[str] = None


class MatchScoreResponse(BaseModel):
    overall: int
    care_types_score: float
    schedule_score: float
    experience_score: float
    location_score: float
    care_types_detail: str
    schedule_detail: str
    experience_detail: str
    location_detail: str
    explanation: str = ""


class NudgeRequest(BaseModel):
    user_ids: List[str] = Field(..., min_length=1)
    channel: str = Field(default="email", description="email, whatsapp or both")
    message_type: str = Field(default="reminder")
    custom_message: Optional[str] = None
    current_step: Optional[int] = None


# ----------------------------------------------------------------------
# Chat
# ----------------------------------------------------------------------

class ChatStartRequest(BaseModel):
    session_id: Optional[str] = None


class ChatReplyRequest(BaseModel):
    session_id: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1, max_length=2000)


# ----------------------------------------------------------------------
# Scheduling & coverage
# ----------------------------------------------------------------------

class CustomShiftDefinition(BaseModel):
    days: List[str] = Field(..., min_length=1)
    start_time: str = Field(..., pattern=r"^\d{1,2}:\d{2}$")
    end_time: str = Field(..., pattern=r"^\d{1,2}:\d{2}$")
    title: Optional[str] = None


class ShiftCreate(BaseModel):
    title: str = Field(..., min_length=1)
    start_time: datetime
    end_time: datetime
    caregiver_id: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None
    recurring_pattern: Optional[str] = None


class CustomShiftsRequest(BaseModel):
    shifts: List[CustomShiftDefinition] = Field(..., min_length=1)


class ShiftAssignRequest(BaseModel):
    caregiver_id: Optional[str] = None


class ShiftStatusUpdate(BaseModel):
    status: str


class ShiftResponse(ORMModel):
    id: str
    care_plan_id: str
    family_id: str
    caregiver_id: Optional[str] = None
    title: str
    description: Optional[str] = None
    location: Optional[str] = None
    status: str
    start_time: datetime
    end_time: datetime
    recurring_pattern: Optional[str] = None


class TimeOffRequest(BaseModel):
    reason: str = Field(..., min_length=1)
    request_message: Optional[str] = None


class CoverageResponseRequest(BaseModel):
    approved: bool


class ClaimConfirmRequest(BaseModel):
    confirmed: bool = True


class CoverageRequestResponse(ORMModel):
    id: str
    shift_id: str
    requesting_caregiver_id: str
    reason: Optional[str] = None
    request_message: Optional[str] = None
    status: str
    requested_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    family_response_at: Optional[datetime] = None


class CoverageClaimResponse(ORMModel):
    id: str
    coverage_request_id: str
    claiming_caregiver_id: str
    status: str
    claimed_at: Optional[datetime] = None
    confirmed_at: Optional[datetime] = None


class WhatsAppInboundMessage(BaseModel):
    """Incoming WhatsApp message forwarded by the webhook."""
    phone_number: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)


# ----------------------------------------------------------------------
# Payroll
# ----------------------------------------------------------------------

class WorkLogCreate(BaseModel):
    care_team_member_id: str
    start_time: datetime
    end_time: datetime
    notes: Optional[str] = None
    base_rate: Optional[float] = Field(default=None, ge=0)
    rate_multiplier: Optional[float] = Field(default=None, gt=0)
    rate_type: str = "regular"
    shift_id: Optional[str] = None


class ExpenseCreate(BaseModel):
    category: str
    amount: float = Field(..., ge=0)
    description: Optional[str] = None
    receipt_url: Optional[str] = None


class ExpenseStatusUpdate(BaseModel):
    status: str


class RateUpdate(BaseModel):
    base_rate: float = Field(..., ge=0)
    rate_multiplier: float = Field(..., gt=0)


class RejectWorkLogRequest(BaseModel):
    reason: str = Field(..., min_length=1)


class PaymentRequest(BaseModel):
    payment_date: Optional[datetime] = None


class PayrollEntryResponse(ORMModel):
    id: str
    care_plan_id: str
    care_team_member_id: str
    work_log_id: str
    regular_hours: Optional[float] = 0.0
    regular_rate: Optional[float] = 0.0
    overtime_hours: Optional[float] = 0.0
    overtime_rate: Optional[float] = None
    holiday_hours: Optional[float] = 0.0
    holiday_rate: Optional[float] = None
    shadow_hours: Optional[float] = 0.0
    expense_total: Optional[float] = 0.0
    total_amount: float
    payment_status: str
    payment_date: Optional[datetime] = None
    entered_at: Optional[datetime] = None


# ----------------------------------------------------------------------
# Medications
# ----------------------------------------------------------------------

class MedicationCreate(BaseModel):
    name: str = Field(..., min_length=1)
    dosage: Optional[str] = None
    instructions: Optional[str] = None
    schedule: Optional[Dict[str, Any]] = None


class MedicationUpdate(BaseModel):
    name: Optional[str] = None
    dosage: Optional[str] = None
    instructions: Optional[str] = None
    schedule: Optional[Dict[str, Any]] = None


class MedicationResponse(ORMModel):
    id: str
    care_plan_id: str
    name: str
    dosage: Optional[str] = None
    instructions: Optional[str] = None
    schedule: Optional[Dict[str, Any]] = None


class AdministrationRequest(BaseModel):
    administered_at: datetime
    notes: Optional[str] = None
    resolution: Optional[str] = Field(default=None, description="cancel, dual_entry or override")


# ----------------------------------------------------------------------
# Meals
# ----------------------------------------------------------------------

class Ingredient(BaseModel):
    name: str
    quantity: Optional[str] = None
    category: Optional[str] = None


class RecipeCreate(BaseModel):
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    category: Optional[str] = None
    preparation_time: Optional[int] = Field(default=None, ge=0)
    servings: Optional[int] = Field(default=None, ge=1)
    ingredients: List[Ingredient] = []
    instructions: List[str] = []


class RecipeResponse(ORMModel):
    id: str
    title: str
    description: Optional[str] = None
    category: Optional[str] = None
    preparation_time: Optional[int] = None
    servings: Optional[int] = None
    ingredients: Optional[List[Any]] = None
    instructions: Optional[List[str]] = None


class MealPlanCreate(BaseModel):
    title: str = Field(..., min_length=1)
    start_date: date
    end_date: date


class MealPlanItemCreate(BaseModel):
    recipe_id: str
    meal_type: str
    scheduled_for: date


class MealPlanItemResponse(ORMModel):
    id: str
    recipe_id: str
    meal_type: str
    scheduled_for: date


class MealPlanResponse(ORMModel):
    id: str
    care_plan_id: str
    title: str
    start_date: date
    end_date: date
    items: List[MealPlanItemResponse] = []


class GroceryListCreate(BaseModel):
    title: str = Field(..., min_length=1)


class GroceryListGenerate(BaseModel):
    title: Optional[str] = None


class GroceryItemCreate(BaseModel):
    item_name: str = Field(..., min_length=1)
    quantity: Optional[str] = None
    category: Optional[str] = None
    notes: Optional[str] = None


class GroceryItemPurchase(BaseModel):
    purchased: bool


class GroceryItemResponse(ORMModel):
    id: str
    item_name: str
    quantity: Optional[str] = None
    category: Optional[str] = None
    purchased: Optional[bool] = False
    purchased_by: Optional[str] = None
    purchased_at: Optional[datetime] = None
    notes: Optional[str] = None


class GroceryListResponse(ORMModel):
    id: str
    care_plan_id: str
    title: str
    status: Optional[str] = None
    created_by: Optional[str] = None
    items: List[GroceryItemResponse] = []


# ----------------------------------------------------------------------
# Care plans
# ----------------------------------------------------------------------

class CarePlanCreate(BaseModel):
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    plan_type: str = "scheduled"
    metadata: Optional[Dict[str, Any]] = None


class CarePlanUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    status: Optional[str] = None
    plan_type: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None


class CarePlanResponse(ORMModel):
    id: str
    family_id: str
    title: str
    description: Optional[str] = None
    status: str
    plan_type: str
    metadata: Optional[Dict[str, Any]] = Field(default=None, validation_alias="plan_metadata")
    created_at: Optional[datetime] = None


class TeamMemberInvite(BaseModel):
    caregiver_id: str
    role: str = "caregiver"
    regular_rate: Optional[float] = Field(default=None, ge=0)
    overtime_rate: Optional[float] = Field(default=None, ge=0)
    display_name: Optional[str] = None
    notes: Optional[str] = None


class TeamMemberUpdate(BaseModel):
    role: Optional[str] = None
    status: Optional[str] = None
    display_name: Optional[str] = None
    regular_rate: Optional[float] = Field(default=None, ge=0)
    overtime_rate: Optional[float] = Field(default=None, ge=0)
    notes: Optional[str] = None


class TeamMemberResponse(ORMModel):
    id: str
    care_plan_id: str
    family_id: str
    caregiver_id: str
    role: str
    status: str
    display_name: Optional[str] = None
    regular_rate: Optional[float] = None
    overtime_rate: Optional[float] = None


# ----------------------------------------------------------------------
# Visits
# ----------------------------------------------------------------------

class VisitRequest(BaseModel):
    visit_type: str = Field(..., description="virtual or in_person")
    visit_date: date
    visit_time: str = Field(..., min_length=1)
    return_url: Optional[str] = None
    cancel_url: Optional[str] = None


class VisitPaymentCompletion(BaseModel):
    order_id: str = Field(..., min_length=1)
    visit_date: date
    visit_time: str
    visit_type: str = "in_person"


class BookingStatusUpdate(BaseModel):
    status: str


class VisitBookingResponse(ORMModel):
    id: str
    user_id: str
    booking_date: date
    booking_time: str
    visit_type: str
    status: str
    payment_status: Optional[str] = None
    payment_reference: Optional[str] = None
    payment_amount: Optional[float] = None
    payment_currency: Optional[str] = None


# ----------------------------------------------------------------------
# WhatsApp auth
# ----------------------------------------------------------------------

class SendCodeRequest(BaseModel):
    phone_number: str = Field(..., min_length=1)
    role: str = Field(..., min_length=1)
    country_code: str = "1"


class VerifyCodeRequest(BaseModel):
    phone_number: str = Field(..., min_length=1)
    code: str = Field(..., min_length=4, max_length=10)
    role: Optional[str] = None


# ----------------------------------------------------------------------
# Leads & feedback
# ----------------------------------------------------------------------

class ContactFormRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: str = Field(..., min_length=3, max_length=255)
    message: str = Field(..., min_length=1, max_length=5000)
    category: Optional[str] = None
    phone: Optional[str] = None
    utm_source: Optional[str] = None
    utm_campaign: Optional[str] = None


class FeedbackRequest(BaseModel):
    feedback_type: str = "general"
    message: str = Field(..., min_length=1, max_length=5000)
    rating: Optional[int] = Field(default=None, ge=1, le=5)
    name: Optional[str] = None
    email: Optional[str] = None


class FeedbackStatusUpdate(BaseModel):
    status: str


class LeadResponse(ORMModel):
    id: str
    source: str
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    role: Optional[str] = None
    lead_score: Optional[int] = 0
    conversation_id: Optional[str] = None
    created_at: Optional[datetime] = None


class FeedbackResponse(ORMModel):
    id: str
    user_id: Optional[str] = None
    feedback_type: str
    rating: Optional[int] = None
    message: str
    status: Optional[str] = None
    created_at: Optional[datetime] = None


# ----------------------------------------------------------------------
# Monitoring
# ----------------------------------------------------------------------

class ErrorResponse(BaseModel):
    """Standard error response schema."""
    error: str = Field(..., description="Error type or code")
    detail: str = Field(..., description="Human-readable error message")
    request_id: Optional[str] = Field(default=None, description="Request identifier")
    timestamp: datetime = Field(default_factory=datetime.utcnow)


class HealthResponse(BaseModel):
    """Health check response schema."""
    status: str = Field(..., description="Service status")
    service: str = Field(..., description="Service name")
    version: str = Field(..., description="Service version")
    database: str = Field(..., description="Database connectivity")


class MetricsResponse(BaseModel):
    """Metrics endpoint response schema."""
    total_assignments: int
    assignments_by_type: Dict[str, int]
    assignments_deactivated: int
    recalculations: Dict[str, int]
    chat_messages: int
    leads_captured: Dict[str, int]
    notifications_sent: Dict[str, int]
    notifications_failed: Dict[str, int]
    payments_captured: int
    average_response_time_ms: float
    error_count: int
    uptime_seconds: float
