"""
Tavara.care - ORM Models

Covers the care-coordination entities:
  - Profile (family / professional / community / admin) and onboarding rows
  - CarePlan, CareTeamMember, CareShift and shift coverage
  - WorkLog, WorkLogExpense, PayrollEntry
  - Medication, MedicationAdministration
  - Recipe, MealPlan, GroceryList
  - ChatbotConversation, ChatbotMessage
  - CaregiverAssignment and its manual / automatic sources
  - Communications, phone verification, visits, leads and feedback
"""

import uuid
from datetime import datetime
from sqlalchemy import (
    Column, String, Integer, Float, Boolean, Text,
    Date, DateTime, ForeignKey, JSON, UniqueConstraint
)
from sqlalchemy.orm import relationship

from tavara.db.base import Base


def _uuid():
    return str(uuid.uuid4())


# ---------------------------------------------------------------------------
# Profiles
# ---------------------------------------------------------------------------

class Profile(Base):
    """
    Platform user. role: family | professional | community | admin
    """
    __tablename__ = "profiles"

    id                  = Column(String(36), primary_key=True, default=_uuid)
    role                = Column(String(20), nullable=False, index=True)
    full_name           = Column(String(255), nullable=True)
    first_name          = Column(String(120), nullable=True)
    last_name           = Column(String(120), nullable=True)
    email               = Column(String(255), unique=True, nullable=True)
    phone_number        = Column(String(30), nullable=True)
    location            = Column(String(255), nullable=True)
    address             = Column(Text, nullable=True)
    avatar_url          = Column(String(500), nullable=True)

    # Care needs (family) / care offering (professional)
    care_types          = Column(JSON, nullable=True)                # list of care type labels
    care_services       = Column(JSON, nullable=True)
    care_schedule       = Column(Text, nullable=True)                # comma-separated shift option ids
    custom_schedule     = Column(Text, nullable=True)
    care_recipient_name = Column(String(255), nullable=True)
    relationship_to_recipient = Column("relationship", String(100), nullable=True)

    # Professional details
    professional_type   = Column(String(100), nullable=True)
    years_of_experience = Column(String(50), nullable=True)          # e.g. "5+ years"
    certifications      = Column(JSON, nullable=True)
    hourly_rate         = Column(String(50), nullable=True)          # e.g. "$35/hr"
    expected_rate       = Column(String(50), nullable=True)
    work_type           = Column(String(100), nullable=True)
    bio                 = Column(Text, nullable=True)
    languages           = Column(JSON, nullable=True)
    background_check    = Column(Boolean, default=False)
    legally_authorized  = Column(Boolean, default=False)
    commute_mode        = Column(String(100), nullable=True)
    additional_notes    = Column(Text, nullable=True)
    availability        = Column(JSON, nullable=True)
    available_for_matching = Column(Boolean, default=True)
    training_completed  = Column(Boolean, default=False)
    orientation_scheduled = Column(Boolean, default=False)

    # Community
    contribution_interests = Column(JSON, nullable=True)
    joined_activities   = Column(JSON, nullable=True)

    # Visit / trial journey
    visit_scheduling_status = Column(String(30), default="not_started")  # not_started/scheduled/completed
    visit_scheduled_date    = Column(DateTime, nullable=True)
    visit_payment_status    = Column(String(30), nullable=True)          # pending/completed
    visit_payment_reference = Column(String(100), nullable=True)
    visit_notes             = Column(JSON, nullable=True)
    trial_status            = Column(String(30), default="not_started")  # scheduled/paid/in_progress/completed
    care_model              = Column(String(30), nullable=True)          # hire/subscribe

    created_at          = Column(DateTime, default=datetime.utcnow)
    updated_at          = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    care_plans          = relationship("CarePlan", back_populates="family", cascade="all, delete-orphan")


class CareNeedsAssessment(Base):
    """Initial care assessment submitted by a family."""
    __tablename__ = "care_needs_family"

    id              = Column(String(36), primary_key=True, default=_uuid)
    profile_id      = Column(String(36), ForeignKey("profiles.id"), nullable=False, unique=True)
    care_types      = Column(JSON, nullable=True)
    schedule        = Column(Text, nullable=True)
    details         = Column(JSON, nullable=True)
    created_at      = Column(DateTime, default=datetime.utcnow)


class CareRecipientProfile(Base):
    """The loved one receiving care, including the Legacy Story."""
    __tablename__ = "care_recipient_profiles"

    id              = Column(String(36), primary_key=True, default=_uuid)
    user_id         = Column(String(36), ForeignKey("profiles.id"), nullable=False, unique=True)
    full_name       = Column(String(255), nullable=True)
    birth_year      = Column(Integer, nullable=True)
    story           = Column(Text, nullable=True)
    created_at      = Column(DateTime, default=datetime.utcnow)


class ProfessionalDocument(Base):
    __tablename__ = "professional_documents"

    id              = Column(String(36), primary_key=True, default=_uuid)
    user_id         = Column(String(36), ForeignKey("profiles.id"), nullable=False)
    document_type   = Column(String(50), nullable=False)             # certification/id/police_record
    file_path       = Column(String(500), nullable=False)
    created_at      = Column(DateTime, default=datetime.utcnow)


# ---------------------------------------------------------------------------
# Care plans, team and shifts
# ---------------------------------------------------------------------------

class CarePlan(Base):
    __tablename__ = "care_plans"

    id              = Column(String(36), primary_key=True, default=_uuid)
    family_id       = Column(String(36), ForeignKey("profiles.id"), nullable=False)
    title           = Column(String(255), nullable=False)
    description     = Column(Text, nullable=True)
    status          = Column(String(20), default="active")           # active/completed/cancelled
    plan_type       = Column(String(20), default="scheduled")        # scheduled/on-demand/both
    plan_metadata   = Column("metadata", JSON, nullable=True)        # custom shifts, preferences
    created_at      = Column(DateTime, default=datetime.utcnow)
    updated_at      = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    family          = relationship("Profile", back_populates="care_plans")
    team_members    = relationship("CareTeamMember", back_populates="care_plan", cascade="all, delete-orphan")


class CareTeamMember(Base):
    __tablename__ = "care_team_members"

    id              = Column(String(36), primary_key=True, default=_uuid)
    care_plan_id    = Column(String(36), ForeignKey("care_plans.id"), nullable=False)
    family_id       = Column(String(36), ForeignKey("profiles.id"), nullable=False)
    caregiver_id    = Column(String(36), ForeignKey("profiles.id"), nullable=False)
    role            = Column(String(20), default="caregiver")        # caregiver/nurse/therapist/doctor/other
    status          = Column(String(20), default="invited")          # invited/active/declined/removed
    display_name    = Column(String(255), nullable=True)
    regular_rate    = Column(Float, nullable=True)
    overtime_rate   = Column(Float, nullable=True)
    notes           = Column(Text, nullable=True)
    created_at      = Column(DateTime, default=datetime.utcnow)
    updated_at      = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    care_plan       = relationship("CarePlan", back_populates="team_members")
    family          = relationship("Profile", foreign_keys=[family_id])
    caregiver       = relationship("Profile", foreign_keys=[caregiver_id])


class CareShift(Base):
    __tablename__ = "care_shifts"

    id              = Column(String(36), primary_key=True, default=_uuid)
    care_plan_id    = Column(String(36), ForeignKey("care_plans.id"), nullable=False)
    family_id       = Column(String(36), ForeignKey("profiles.id"), nullable=False)
    caregiver_id    = Column(String(36), ForeignKey("profiles.id"), nullable=True)
    title           = Column(String(255), nullable=False)
    description     = Column(Text, nullable=True)
    location        = Column(String(255), nullable=True)
    status          = Column(String(20), default="open")             # open/assigned/completed/cancelled
    start_time      = Column(DateTime, nullable=False)
    end_time        = Column(DateTime, nullable=False)
    recurring_pattern = Column(String(100), nullable=True)
    reminder_sent_at  = Column(DateTime, nullable=True)
    created_at      = Column(DateTime, default=datetime.utcnow)
    updated_at      = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    care_plan       = relationship("CarePlan")


class ShiftCoverageRequest(Base):
    """Time-off request raised by the caregiver assigned to a shift."""
    __tablename__ = "shift_coverage_requests"

    id                      = Column(String(36), primary_key=True, default=_uuid)
    shift_id                = Column(String(36), ForeignKey("care_shifts.id"), nullable=False)
    requesting_caregiver_id = Column(String(36), ForeignKey("profiles.id"), nullable=False)
    reason                  = Column(String(100), nullable=True)
    request_message         = Column(Text, nullable=True)
    status                  = Column(String(40), default="pending_family_approval")
    requested_at            = Column(DateTime, default=datetime.utcnow)
    expires_at              = Column(DateTime, nullable=True)
    family_response_at      = Column(DateTime, nullable=True)
    family_response_by      = Column(String(36), ForeignKey("profiles.id"), nullable=True)

    shift                   = relationship("CareShift")
    claims                  = relationship("ShiftCoverageClaim", back_populates="coverage_request",
                                           cascade="all, delete-orphan")


class ShiftCoverageClaim(Base):
    __tablename__ = "shift_coverage_claims"

    id                    = Column(String(36), primary_key=True, default=_uuid)
    coverage_request_id   = Column(String(36), ForeignKey("shift_coverage_requests.id"), nullable=False)
    claiming_caregiver_id = Column(String(36), ForeignKey("profiles.id"), nullable=False)
    status                = Column(String(40), default="pending_family_confirmation")
    claimed_at            = Column(DateTime, default=datetime.utcnow)
    confirmed_at          = Column(DateTime, nullable=True)

    coverage_request      = relationship("ShiftCoverageRequest", back_populates="claims")


class ShiftNotification(Base):
    __tablename__ = "shift_notifications"

    id                  = Column(String(36), primary_key=True, default=_uuid)
    coverage_request_id = Column(String(36), ForeignKey("shift_coverage_requests.id"), nullable=True)
    shift_id            = Column(String(36), ForeignKey("care_shifts.id"), nullable=True)
    notification_type   = Column(String(50), nullable=False)
    sent_to             = Column(String(36), ForeignKey("profiles.id"), nullable=False)
    message_content     = Column(Text, nullable=False)
    delivery_status     = Column(String(20), default="sent")
    created_at          = Column(DateTime, default=datetime.utcnow)


# ---------------------------------------------------------------------------
# Work logs & payroll
# ---------------------------------------------------------------------------

class WorkLog(Base):
    __tablename__ = "work_logs"

    id                  = Column(String(36), primary_key=True, default=_uuid)
    care_team_member_id = Column(String(36), ForeignKey("care_team_members.id"), nullable=False)
    care_plan_id        = Column(String(36), ForeignKey("care_plans.id"), nullable=False)
    shift_id            = Column(String(36), ForeignKey("care_shifts.id"), nullable=True)
    start_time          = Column(DateTime, nullable=False)
    end_time            = Column(DateTime, nullable=False)
    notes               = Column(Text, nullable=True)
    status              = Column(String(20), default="pending")      # pending/approved/rejected
    base_rate           = Column(Float, nullable=True)
    rate_multiplier     = Column(Float, nullable=True)
    rate_type           = Column(String(20), default="regular")      # regular/overtime/holiday/shadow
    created_at          = Column(DateTime, default=datetime.utcnow)
    updated_at          = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    team_member         = relationship("CareTeamMember")
    expenses            = relationship("WorkLogExpense", back_populates="work_log", cascade="all, delete-orphan")


class WorkLogExpense(Base):
    __tablename__ = "work_log_expenses"

    id              = Column(String(36), primary_key=True, default=_uuid)
    work_log_id     = Column(String(36), ForeignKey("work_logs.id"), nullable=False)
    category        = Column(String(50), nullable=False)             # transportation/meals/supplies/other
    description     = Column(Text, nullable=True)
    amount          = Column(Float, nullable=False)
    receipt_url     = Column(String(500), nullable=True)
    status          = Column(String(20), default="pending")
    created_at      = Column(DateTime, default=datetime.utcnow)

    work_log        = relationship("WorkLog", back_populates="expenses")


class PayrollEntry(Base):
    __tablename__ = "payroll_entries"

    id                  = Column(String(36), primary_key=True, default=_uuid)
    care_plan_id        = Column(String(36), ForeignKey("care_plans.id"), nullable=False)
    care_team_member_id = Column(String(36), ForeignKey("care_team_members.id"), nullable=False)
    work_log_id         = Column(String(36), ForeignKey("work_logs.id"), nullable=False, unique=True)
    regular_hours       = Column(Float, default=0.0)
    regular_rate        = Column(Float, default=0.0)
    overtime_hours      = Column(Float, default=0.0)
    overtime_rate       = Column(Float, nullable=True)
    holiday_hours       = Column(Float, default=0.0)
    holiday_rate        = Column(Float, nullable=True)
    shadow_hours        = Column(Float, default=0.0)
    expense_total       = Column(Float, default=0.0)
    total_amount        = Column(Float, nullable=False)
    payment_status      = Column(String(20), default="pending")      # pending/approved/paid
    payment_date        = Column(DateTime, nullable=True)
    entered_at          = Column(DateTime, default=datetime.utcnow)
    created_at          = Column(DateTime, default=datetime.utcnow)
    updated_at          = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    team_member         = relationship("CareTeamMember")


# ---------------------------------------------------------------------------
# Medications
# ---------------------------------------------------------------------------

class Medication(Base):
    __tablename__ = "medications"

    id              = Column(String(36), primary_key=True, default=_uuid)
    care_plan_id    = Column(String(36), ForeignKey("care_plans.id"), nullable=False)
    name            = Column(String(255), nullable=False)
    dosage          = Column(String(100), nullable=True)
    instructions    = Column(Text, nullable=True)
    schedule        = Column(JSON, nullable=True)                    # e.g. {"times": ["08:00", "20:00"]}
    created_at      = Column(DateTime, default=datetime.utcnow)


class MedicationAdministration(Base):
    __tablename__ = "medication_administrations"

    id                          = Column(String(36), primary_key=True, default=_uuid)
    medication_id               = Column(String(36), ForeignKey("medications.id"), nullable=False)
    administered_at             = Column(DateTime, nullable=False)
    administered_by             = Column(String(36), ForeignKey("profiles.id"), nullable=False)
    administered_by_role        = Column(String(20), nullable=False)  # family/professional
    status                      = Column(String(20), default="administered")
    notes                       = Column(Text, nullable=True)
    conflict_detected           = Column(Boolean, default=False)
    conflict_resolution_method  = Column(String(20), nullable=True)   # dual_entry/override
    original_administration_id  = Column(String(36), ForeignKey("medication_administrations.id"), nullable=True)
    created_at                  = Column(DateTime, default=datetime.utcnow)

    administrator               = relationship("Profile")


# ---------------------------------------------------------------------------
# Meal planning
# ---------------------------------------------------------------------------

class Recipe(Base):
    __tablename__ = "recipes"

    id                  = Column(String(36), primary_key=True, default=_uuid)
    title               = Column(String(255), nullable=False)
    description         = Column(Text, nullable=True)
    category            = Column(String(50), nullable=True)
    preparation_time    = Column(Integer, nullable=True)             # minutes
    servings            = Column(Integer, nullable=True)
    ingredients         = Column(JSON, nullable=True)                # list of {"name", "quantity", "category"}
    instructions        = Column(JSON, nullable=True)
    created_at          = Column(DateTime, default=datetime.utcnow)


class MealPlan(Base):
    __tablename__ = "meal_plans"

    id              = Column(String(36), primary_key=True, default=_uuid)
    care_plan_id    = Column(String(36), ForeignKey("care_plans.id"), nullable=False)
    title           = Column(String(255), nullable=False)
    start_date      = Column(Date, nullable=False)
    end_date        = Column(Date, nullable=False)
    created_at      = Column(DateTime, default=datetime.utcnow)

    items           = relationship("MealPlanItem", back_populates="meal_plan", cascade="all, delete-orphan")


class MealPlanItem(Base):
    __tablename__ = "meal_plan_items"

    id              = Column(String(36), primary_key=True, default=_uuid)
    meal_plan_id    = Column(String(36), ForeignKey("meal_plans.id"), nullable=False)
    recipe_id       = Column(String(36), ForeignKey("recipes.id"), nullable=False)
    meal_type       = Column(String(20), nullable=False)             # breakfast/lunch/dinner/snack
    scheduled_for   = Column(Date, nullable=False)
    created_at      = Column(DateTime, default=datetime.utcnow)

    meal_plan       = relationship("MealPlan", back_populates="items")
    recipe          = relationship("Recipe")


class GroceryList(Base):
    __tablename__ = "grocery_lists"

    id              = Column(String(36), primary_key=True, default=_uuid)
    care_plan_id    = Column(String(36), ForeignKey("care_plans.id"), nullable=False)
    title           = Column(String(255), nullable=False)
    status          = Column(String(20), default="active")           # active/completed
    created_by      = Column(String(36), ForeignKey("profiles.id"), nullable=True)
    created_at      = Column(DateTime, default=datetime.utcnow)
    updated_at      = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    items           = relationship("GroceryListItem", back_populates="grocery_list", cascade="all, delete-orphan")


class GroceryListItem(Base):
    __tablename__ = "grocery_list_items"

    id              = Column(String(36), primary_key=True, default=_uuid)
    grocery_list_id = Column(String(36), ForeignKey("grocery_lists.id"), nullable=False)
    item_name       = Column(String(255), nullable=False)
    quantity        = Column(String(100), nullable=True)
    category        = Column(String(50), nullable=True)
    purchased       = Column(Boolean, default=False)
    purchased_by    = Column(String(36), ForeignKey("profiles.id"), nullable=True)
    purchased_at    = Column(DateTime, nullable=True)
    notes           = Column(Text, nullable=True)
    created_at      = Column(DateTime, default=datetime.utcnow)

    grocery_list    = relationship("GroceryList", back_populates="items")


# ---------------------------------------------------------------------------
# Registration assistant
# ---------------------------------------------------------------------------

class ChatbotConversation(Base):
    __tablename__ = "chatbot_conversations"

    id              = Column(String(36), primary_key=True, default=_uuid)
    session_id      = Column(String(100), unique=True, nullable=False)
    user_id         = Column(String(36), ForeignKey("profiles.id"), nullable=True)
    contact_info    = Column(JSON, nullable=True)
    care_needs      = Column(JSON, nullable=True)
    current_step    = Column(String(30), default="welcome")
    lead_score      = Column(Integer, default=0)
    converted       = Column(Boolean, default=False)
    created_at      = Column(DateTime, default=datetime.utcnow)
    updated_at      = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    messages        = relationship("ChatbotMessage", back_populates="conversation",
                                   cascade="all, delete-orphan", order_by="ChatbotMessage.sequence")


class ChatbotMessage(Base):
    __tablename__ = "chatbot_messages"

    id              = Column(String(36), primary_key=True, default=_uuid)
    conversation_id = Column(String(36), ForeignKey("chatbot_conversations.id"), nullable=False)
    sequence        = Column(Integer, nullable=False)
    sender_type     = Column(String(10), nullable=False)             # user/bot/system
    message         = Column(Text, nullable=False)
    message_type    = Column(String(10), default="text")             # text/option
    context_data    = Column(JSON, nullable=True)
    created_at      = Column(DateTime, default=datetime.utcnow)

    conversation    = relationship("ChatbotConversation", back_populates="messages")


# ---------------------------------------------------------------------------
# Matching & assignments
# ---------------------------------------------------------------------------

class CaregiverAssignment(Base):
    """
    Unified family-caregiver link. assignment_type: manual | care_team | automatic
    """
    __tablename__ = "caregiver_assignments"

    id                          = Column(String(36), primary_key=True, default=_uuid)
    family_user_id              = Column(String(36), ForeignKey("profiles.id"), nullable=False, index=True)
    caregiver_id                = Column(String(36), ForeignKey("profiles.id"), nullable=False, index=True)
    assignment_type             = Column(String(20), nullable=False)
    match_score                 = Column(Float, nullable=False)
    shift_compatibility_score   = Column(Float, nullable=True)
    match_explanation           = Column(Text, nullable=True)
    status                      = Column(String(20), default="active")
    is_active                   = Column(Boolean, default=True)
    care_plan_id                = Column(String(36), ForeignKey("care_plans.id"), nullable=True)
    assignment_reason           = Column(Text, nullable=True)
    notes                       = Column(Text, nullable=True)
    created_by                  = Column(String(36), ForeignKey("profiles.id"), nullable=True)
    created_at                  = Column(DateTime, default=datetime.utcnow)
    updated_at                  = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class AdminMatchIntervention(Base):
    __tablename__ = "admin_match_interventions"

    id                      = Column(String(36), primary_key=True, default=_uuid)
    family_user_id          = Column(String(36), ForeignKey("profiles.id"), nullable=False)
    caregiver_id            = Column(String(36), ForeignKey("profiles.id"), nullable=False)
    admin_id                = Column(String(36), ForeignKey("profiles.id"), nullable=True)
    admin_match_score       = Column(Float, nullable=False)
    calculated_match_score  = Column(Float, nullable=True)
    reason                  = Column(Text, nullable=True)
    notes                   = Column(Text, nullable=True)
    status                  = Column(String(20), default="active")
    created_at              = Column(DateTime, default=datetime.utcnow)

    family                  = relationship("Profile", foreign_keys=[family_user_id])
    caregiver               = relationship("Profile", foreign_keys=[caregiver_id])


class AutomaticAssignment(Base):
    __tablename__ = "automatic_assignments"

    id                  = Column(String(36), primary_key=True, default=_uuid)
    family_user_id      = Column(String(36), ForeignKey("profiles.id"), nullable=False)
    caregiver_id        = Column(String(36), ForeignKey("profiles.id"), nullable=False)
    match_score         = Column(Float, nullable=False)
    match_explanation   = Column(Text, nullable=True)
    is_active           = Column(Boolean, default=True)
    created_at          = Column(DateTime, default=datetime.utcnow)

    family              = relationship("Profile", foreign_keys=[family_user_id])
    caregiver           = relationship("Profile", foreign_keys=[caregiver_id])


class MatchRecalculationLog(Base):
    __tablename__ = "match_recalculation_log"

    id                  = Column(String(36), primary_key=True, default=_uuid)
    caregiver_id        = Column(String(36), ForeignKey("profiles.id"), nullable=False)
    recalculation_type  = Column(String(50), nullable=False)
    status              = Column(String(20), default="processing")   # processing/completed/failed
    assignments_created = Column(Integer, default=0)
    assignments_removed = Column(Integer, default=0)
    error_message       = Column(Text, nullable=True)
    created_at          = Column(DateTime, default=datetime.utcnow)
    processed_at        = Column(DateTime, nullable=True)


# ---------------------------------------------------------------------------
# Communications & phone verification
# ---------------------------------------------------------------------------

class AdminCommunication(Base):
    __tablename__ = "admin_communications"

    id              = Column(String(36), primary_key=True, default=_uuid)
    admin_id        = Column(String(36), ForeignKey("profiles.id"), nullable=True)
    target_user_id  = Column(String(36), ForeignKey("profiles.id"), nullable=False)
    message_type    = Column(String(50), nullable=False)             # nudge/new_match_available/...
    channel         = Column(String(20), default="in_app")           # in_app/email/whatsapp
    custom_message  = Column(Text, nullable=True)
    delivery_status = Column(String(20), default="sent")
    sent_at         = Column(DateTime, default=datetime.utcnow)


class WhatsAppAuth(Base):
    __tablename__ = "whatsapp_auth"

    id                          = Column(String(36), primary_key=True, default=_uuid)
    phone_number                = Column(String(30), unique=True, nullable=False)
    formatted_number            = Column(String(30), nullable=False)
    verification_code           = Column(String(10), nullable=True)
    code_expires_at             = Column(DateTime, nullable=True)
    user_role                   = Column(String(20), nullable=True)
    country_code                = Column(String(5), nullable=True)
    verification_attempts       = Column(Integer, default=0)
    last_verification_attempt   = Column(DateTime, nullable=True)
    is_verified                 = Column(Boolean, default=False)
    created_at                  = Column(DateTime, default=datetime.utcnow)
    updated_at                  = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class WhatsAppMessageLog(Base):
    __tablename__ = "whatsapp_message_log"

    id              = Column(String(36), primary_key=True, default=_uuid)
    phone_number    = Column(String(30), nullable=False)
    user_id         = Column(String(36), ForeignKey("profiles.id"), nullable=True)
    direction       = Column(String(10), nullable=False)             # incoming/outgoing
    message_type    = Column(String(20), default="text")
    content         = Column(Text, nullable=True)
    template_name   = Column(String(100), nullable=True)
    processed       = Column(Boolean, default=False)
    processed_at    = Column(DateTime, nullable=True)
    created_at      = Column(DateTime, default=datetime.utcnow)


# ---------------------------------------------------------------------------
# Visits, leads & feedback
# ---------------------------------------------------------------------------

class VisitBooking(Base):
    __tablename__ = "visit_bookings"

    id                  = Column(String(36), primary_key=True, default=_uuid)
    user_id             = Column(String(36), ForeignKey("profiles.id"), nullable=False)
    booking_date        = Column(Date, nullable=False)
    booking_time        = Column(String(10), nullable=False)
    visit_type          = Column(String(20), nullable=False)         # virtual/in_person
    status              = Column(String(20), default="scheduled")
    payment_status      = Column(String(20), default="not_required")
    payment_reference   = Column(String(100), nullable=True)
    payment_amount      = Column(Float, nullable=True)
    payment_currency    = Column(String(5), nullable=True)
    created_at          = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (UniqueConstraint("payment_reference", name="uq_visit_payment_reference"),)


class Lead(Base):
    """Marketing lead from the contact form or the registration assistant."""
    __tablename__ = "leads"

    id              = Column(String(36), primary_key=True, default=_uuid)
    source          = Column(String(30), nullable=False)             # contact_form/chatbot
    name            = Column(String(255), nullable=True)
    email           = Column(String(255), nullable=True)
    phone           = Column(String(30), nullable=True)
    message         = Column(Text, nullable=True)
    role            = Column(String(20), nullable=True)
    lead_score      = Column(Integer, default=0)
    conversation_id = Column(String(36), ForeignKey("chatbot_conversations.id"), nullable=True)
    utm_source      = Column(String(100), nullable=True)
    utm_campaign    = Column(String(100), nullable=True)
    created_at      = Column(DateTime, default=datetime.utcnow)


class Feedback(Base):
    __tablename__ = "feedback"

    id              = Column(String(36), primary_key=True, default=_uuid)
    user_id         = Column(String(36), ForeignKey("profiles.id"), nullable=True)
    feedback_type   = Column(String(30), nullable=False)             # general/bug/feature/testimonial
    rating          = Column(Integer, nullable=True)
    message         = Column(Text, nullable=False)
    name            = Column(String(255), nullable=True)
    email           = Column(String(255), nullable=True)
    status          = Column(String(20), default="new")
    created_at      = Column(DateTime, default=datetime.utcnow)
