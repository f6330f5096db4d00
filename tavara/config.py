"""
Tavara.care Coordination Service - Domain Configuration

Fixed catalogues and constants shared by the services:
assignment priorities, scoring weights, shift options,
journey steps, chat flows and notification templates.
Deployment-specific values live in tavara.core.settings.
"""

from typing import List, Dict


# Roles
ROLES = ["family", "professional", "community", "admin"]

# Assignment Priorities (lower sorts first)
ASSIGNMENT_PRIORITY = {
    "manual": 1,
    "care_team": 2,
    "automatic": 3
}

# Match Scoring
MATCH_WEIGHTS = {
    "care_types": 0.40,
    "schedule": 0.25,
    "experience": 0.20,
    "location": 0.15
}
NEUTRAL_SCORE = 50

# (minimum years, score), checked top-down
EXPERIENCE_SCORE_BANDS = [
    (10, 100),
    (5, 85),
    (2, 70),
    (1, 55)
]
EXPERIENCE_BASE_SCORE = 40

LOCATION_SAME_SCORE = 100
LOCATION_SAME_ISLAND_SCORE = 70
LOCATION_OTHER_SCORE = 40

# Caregiver schedules that cover any requested shift
FLEXIBLE_SCHEDULE_IDS = ["flexible", "24_7_care", "live_in_care"]

# Fallbacks for caregiver cards shown to families
MATCH_CARD_DEFAULTS = {
    "full_name": "Professional Caregiver",
    "location": "Trinidad and Tobago",
    "care_types": ["General Care"],
    "years_of_experience": "Experience not specified"
}
UNKNOWN_FAMILY_NAME = "Unknown Family"
PREMIUM_HASH_MODULUS = 10
PREMIUM_HASH_CUTOFF = 3

# Standardized Shift Options: id -> (label, start, end, description)
SHIFT_OPTIONS: Dict[str, tuple] = {
    "mon_fri_8am_4pm": ("Monday-Friday, 8:00 AM - 4:00 PM", "08:00", "16:00",
                        "Standard daytime coverage during business hours"),
    "mon_fri_8am_6pm": ("Monday-Friday, 8:00 AM - 6:00 PM", "08:00", "18:00",
                        "Extended daytime coverage with longer hours"),
    "mon_fri_6am_6pm": ("Monday-Friday, 6:00 AM - 6:00 PM", "06:00", "18:00",
                        "Extended daytime coverage for more comprehensive care"),
    "sat_sun_6am_6pm": ("Saturday-Sunday, 6:00 AM - 6:00 PM", "06:00", "18:00",
                        "Daytime weekend coverage with a dedicated caregiver"),
    "sat_sun_8am_4pm": ("Saturday-Sunday, 8:00 AM - 4:00 PM", "08:00", "16:00",
                        "Standard weekend coverage for family assistance"),
    "weekday_evening_4pm_6am": ("Weekday Evening, 4:00 PM - 6:00 AM", "16:00", "06:00",
                                "Evening care on weekdays after the primary shift ends, "
                                "or continuous 24-hour coverage"),
    "weekday_evening_4pm_8am": ("Weekday Evening, 4:00 PM - 8:00 AM", "16:00", "08:00",
                                "Evening care on weekdays after the primary shift ends, "
                                "or continuous 24-hour coverage"),
    "weekday_evening_5pm_5am": ("Weekday Evening, 5:00 PM - 5:00 AM", "17:00", "05:00",
                                "Evening care on weekdays after the primary shift ends, "
                                "or continuous 24-hour coverage"),
    "weekday_evening_5pm_8am": ("Weekday Evening, 5:00 PM - 8:00 AM", "17:00", "08:00",
                                "Evening care on weekdays after the primary shift ends, "
                                "or continuous 24-hour coverage"),
    "weekday_evening_6pm_6am": ("Weekday Evening, 6:00 PM - 6:00 AM", "18:00", "06:00",
                                "Evening care on weekdays after the primary shift ends, "
                                "or continuous 24-hour coverage"),
    "weekday_evening_6pm_8am": ("Weekday Evening, 6:00 PM - 8:00 AM", "18:00", "08:00",
                                "Evening care on weekdays after the primary shift ends, "
                                "or continuous 24-hour coverage"),
    "weekend_evening_4pm_6am": ("Weekend Evening, 4:00 PM - 6:00 AM", "16:00", "06:00",
                                "Evening care on weekends for continuous coverage"),
    "weekend_evening_6pm_6am": ("Weekend Evening, 6:00 PM - 6:00 AM", "18:00", "06:00",
                                "Evening care on weekends for continuous coverage"),
    "flexible": ("Flexible/On-Demand", "08:00", "16:00",
                 "Flexible scheduling based on care needs"),
    "live_in_care": ("Live-In Care", "08:00", "16:00",
                     "Full-time in-home support with live-in arrangement"),
    "24_7_care": ("24/7 Care", "08:00", "16:00",
                  "Round-the-clock care availability"),
    "around_clock_shifts": ("Around-the-Clock Shifts", "08:00", "16:00",
                            "Multiple caregivers rotating for continuous coverage"),
    "other": ("Custom Schedule", "08:00", "16:00",
              "Custom shift schedule - specify your hours"),
}
SPECIAL_SHIFT_TYPES = ["flexible", "live_in_care", "24_7_care", "around_clock_shifts", "other"]
DEFAULT_SHIFT_RANGE = ("08:00", "16:00")
DEFAULT_SHIFT_DESCRIPTION = "Care shift"

WEEKDAYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]

# Statuses
CARE_TEAM_STATUSES = ["invited", "active", "declined", "removed"]
CARE_TEAM_ROLES = ["caregiver", "nurse", "therapist", "doctor", "other"]
CARE_PLAN_TYPES = ["scheduled", "on-demand", "both"]
SHIFT_STATUSES = ["open", "assigned", "completed", "cancelled"]
RATE_TYPES = ["regular", "overtime", "holiday", "shadow"]
EXPENSE_CATEGORIES = ["transportation", "meals", "supplies", "other"]
PAYMENT_STATUSES = ["pending", "approved", "paid"]
MEAL_TYPES = ["breakfast", "lunch", "dinner", "snack"]
MEDICATION_RESOLUTIONS = ["cancel", "dual_entry", "override"]
FEEDBACK_TYPES = ["general", "bug", "feature", "testimonial"]
VISIT_TYPES = ["virtual", "in_person"]

# Journey Steps: (id, title, description, link)
USER_JOURNEY_STEPS: Dict[str, List[tuple]] = {
    "family": [
        (1, "Complete your profile", "Add your contact information and preferences", "/registration/family"),
        (2, "Complete initial care assessment", "Help us understand your care needs better", "/family/care-assessment"),
        (3, "Complete your loved one's Legacy Story", "Share their story to personalize care", "/family/story"),
        (4, "See your instant caregiver matches", "View personalized caregiver recommendations", "/caregiver-matching"),
        (5, "Set up medication management", "Add medications and schedules", "/family/care-management"),
        (6, "Set up meal management", "Plan meals and create grocery lists", "/family/care-management"),
        (7, "Schedule your Visit", "Meet your care coordinator", "/family/schedule-visit"),
    ],
    "professional": [
        (1, "Create your account", "Set up your Tavara account", "/auth"),
        (2, "Complete your professional profile", "Add your experience and certifications", "/registration/professional"),
        (3, "Upload certifications & documents", "Verify your credentials", "/professional/profile"),
        (4, "Set your availability preferences", "Configure your work schedule", "/professional/profile"),
        (5, "Complete training modules", "Enhance your skills", "/professional/training"),
        (6, "Schedule orientation session", "Complete your onboarding", "/professional/profile"),
    ],
    "community": [
        (1, "Complete your profile", "Add your contact information", "/registration/community"),
        (2, "Tell us about your interests", "Share how you'd like to help", "/community/interests"),
        (3, "Join community activities", "Start supporting families", "/community/activities"),
    ],
    "admin": [
        (1, "Admin account setup", "Configure admin settings", "/admin/dashboard"),
        (2, "System configuration", "Set up system preferences", "/admin/settings"),
    ],
}
FALLBACK_JOURNEY_STEPS = [(1, "Getting Started", "Complete your profile", "/dashboard")]

# Family journey: (id, title, description, category, optional, link)
FAMILY_JOURNEY_STEPS = [
    (1, "Complete Your Profile", "Add your contact information and preferences.",
     "foundation", False, "/registration/family"),
    (2, "Complete Initial Care Assessment", "Help us understand your care needs better.",
     "foundation", False, "/family/care-assessment"),
    (3, "Complete Your Loved One's Legacy Story",
     "Our Legacy Story feature honors the voices, memories, and wisdom of those we care for.",
     "foundation", True, "/family/story"),
    (4, "See Your Instant Caregiver Matches",
     "Now that your loved one's profile is complete, unlock personalized caregiver recommendations.",
     "foundation", False, "/caregiver/matching"),
    (5, "Set Up Medication Management", "Add medications and set up schedules for your care plan.",
     "foundation", False, "/family/care-management"),
    (6, "Set Up Meal Management", "Plan meals and create grocery lists for your care plan.",
     "foundation", False, "/family/care-management"),
    (7, "Schedule Your Tavara.Care Visit",
     "Choose to meet your match and a care coordinator virtually (Free) or in person ($300 TTD).",
     "scheduling", False, "/family/schedule-visit"),
    (8, "Confirm Visit", "Confirm the video link or complete payment for in-person visit.",
     "scheduling", False, None),
    (9, "Schedule Trial Day", "Choose a trial date with your matched caregiver.",
     "trial", True, None),
    (10, "Pay for Trial Day", "Pay a one-time fee of $320 TTD for an 8-hour caregiver experience.",
     "trial", True, None),
    (11, "Begin Your Trial", "Your caregiver begins the scheduled trial session.",
     "trial", True, None),
    (12, "Rate & Choose Your Path",
     "After the trial, decide between: Hire your caregiver ($40/hr) or Subscribe to Tavara ($45/hr) "
     "for full support tools.",
     "conversion", False, None),
]
MATCHING_STEP_ID = 4
FOUNDATION_STEPS_FOR_SCHEDULING = 4
MATCHING_PREREQUISITE_STEP_IDS = [1, 2, 3]

# Trial status progression on the profile
TRIAL_SCHEDULED_STATUSES = ["scheduled", "paid", "in_progress", "completed"]
TRIAL_PAID_STATUSES = ["paid", "in_progress", "completed"]
TRIAL_STARTED_STATUSES = ["in_progress", "completed"]

# Registration Assistant
CHAT_STEPS = [
    "welcome",
    "role_selection",
    "contact_info",
    "care_needs",
    "schedule",
    "urgency",
    "completion"
]

ROLE_OPTIONS = [
    {"id": "family", "label": "I need care for someone"},
    {"id": "professional", "label": "I provide care services"},
    {"id": "community", "label": "I want to support the community"},
]

CHAT_INTRO_MESSAGE = (
    "Welcome to Tavara! Are you here to find care for someone, "
    "or are you a caregiver looking for opportunities?"
)

ROLE_FOLLOWUP_MESSAGES = {
    "family": "I understand you're looking for care for a loved one. Let's collect some information "
              "to help match you with the right professional.",
    "professional": "Welcome, professional caregiver! I'll ask you a few questions to understand your "
                    "expertise and help connect you with families who need your skills.",
    "community": "Thank you for your interest in helping! I'll ask a few questions to understand how "
                 "you'd like to contribute to our caregiving community.",
}
DEFAULT_FOLLOWUP_MESSAGE = "Thank you for reaching out. Let me guide you through the next steps."

# Prompt per step; contact_info walks through CONTACT_FIELDS in order
CONTACT_FIELDS = [
    ("firstName", "What is your first name?"),
    ("lastName", "What is your last name?"),
    ("email", "What's your email address?"),
    ("phone", "What's your phone number?"),
    ("location", "Where in Trinidad & Tobago are you located?"),
]
STEP_PROMPTS = {
    "care_needs": {
        "family": "What type of care assistance do you need? For example, daily activities, "
                  "medical care, companionship?",
        "professional": "What type of caregiving do you specialize in?",
        "community": "What skills or resources can you contribute to our caregiving community?",
    },
    "schedule": {
        "family": "How often do you need care? Daily, weekly, or for specific hours?",
        "professional": "What is your typical availability? (Days, evenings, weekends)",
        "community": "How much time can you commit to community support activities?",
    },
    "urgency": {
        "family": "When would you like to start receiving care?",
        "professional": "When are you available to start?",
        "community": "When would you like to get started?",
    },
}
# Families are asked who the care is for before the care type
RELATIONSHIP_PROMPT = "Who are you seeking care for? A parent, spouse, child, or someone else?"
URGENCY_OPTIONS = [
    {"id": "immediate", "label": "Immediately"},
    {"id": "soon", "label": "Within the next few weeks"},
    {"id": "planning", "label": "Just planning ahead"},
]
COMPLETION_MESSAGE = (
    "Thank you! I have everything I need. Continue to registration and your answers "
    "will already be filled in."
)

# Registration questions per role, used for option generation and field detection.
# Each question: (id, label, type, options)
REGISTRATION_FLOWS: Dict[str, List[tuple]] = {
    "family": [
        ("first_name", "What is your first name?", "text", None),
        ("last_name", "What is your last name?", "text", None),
        ("email", "What's your email address?", "text", None),
        ("phone", "What's your phone number?", "text", None),
        ("care_type", "What type of care are you looking for?", "select",
         ["Elder Care", "Child Care", "Special Needs Care", "Medical Support", "Other"]),
        ("care_details", "Can you provide more details about the care needs?", "textarea", None),
        ("budget", "What is your budget per hour?", "text", None),
    ],
    "professional": [
        ("first_name", "What is your first name?", "text", None),
        ("last_name", "What is your last name?", "text", None),
        ("professional_role", "What is your professional role?", "select",
         ["Nurse", "Home Health Aide", "Therapist", "Caregiver", "Other"]),
        ("years_experience", "How many years of experience do you have?", "select",
         ["0-2 years", "3-5 years", "6-10 years", "10+ years"]),
        ("specialties", "What are your areas of specialty?", "multiselect",
         ["Elder Care", "Child Care", "Special Needs", "Medical Support", "Therapy", "Other"]),
    ],
    "community": [
        ("name", "What is your name?", "text", None),
        ("organization", "Are you representing an organization?", "confirm", None),
        ("organization_name", "What is the name of your organization?", "text", None),
        ("involvement_type", "How would you like to get involved?", "checkbox",
         ["Volunteer", "Donate", "Advocacy", "Events", "Other"]),
        ("comments", "Any additional comments or questions?", "textarea", None),
    ],
}

# Lead Scoring
CONTACT_LEAD_SCORES = {
    "firstName": 5,
    "lastName": 5,
    "email": 10,
    "phone": 15,
    "location": 10
}
CARE_NEEDS_LEAD_SCORES = {
    "relationship": 10,
    "careType": 15,
    "schedule": 10,
    "role": 10
}
URGENCY_LEAD_SCORES = {
    "immediate": 20,
    "soon": 10
}

# Medications
ADMINISTERED_BY_LABELS = {
    "family": "family member",
    "professional": "caregiver"
}

# Phone Verification
WHATSAPP_EMAIL_DOMAIN = "whatsapp.tavara.care"
DEFAULT_COUNTRY_CODE = "1"
VERIFICATION_MESSAGE = "Your Tavara verification code is: {code}. This code expires in {minutes} minutes."

# Nudges: role -> step -> message
NUDGE_STEP_MESSAGES = {
    "family": {
        1: "Welcome to Tavara! Let's complete your family profile to connect you with the right caregivers.",
        2: "Help us understand your loved one's story so we can find the perfect caregiver match.",
        3: "Complete your care needs assessment to get personalized caregiver recommendations.",
        4: "Set your caregiver preferences to ensure the best possible matches.",
        5: "Let us know your preferred care schedule and budget to finalize your profile.",
        6: "Almost there! Review your profile to start connecting with caregivers.",
        7: "Your profile is complete! Start browsing available caregivers.",
    },
    "professional": {
        1: "Welcome to Tavara! Complete your professional profile to start connecting with families.",
        2: "Add your professional experience and specialties to attract the right families.",
        3: "Upload your certifications to build trust with families and stand out.",
        4: "Complete your background verification to unlock more opportunities.",
        5: "Your profile is almost ready! Complete the final steps to start receiving job matches.",
    },
    "community": {
        1: "Welcome to Tavara! Join our community of care supporters and volunteers.",
        2: "Tell us about your interests so we can connect you with the right volunteer opportunities.",
        3: "You're all set! Start exploring ways to support families in your community.",
    },
}
DEFAULT_NUDGE_MESSAGE = "Continue your journey with Tavara!"

# Shift coverage replies accepted over WhatsApp
COVERAGE_REPLY_KEYWORDS = ["APPROVE", "DENY", "CLAIM", "CONFIRM", "DECLINE"]

# WhatsApp nudge templates by message type; {name} is replaced per recipient
NUDGE_TEMPLATES = {
    "welcome": "Hi {name}! Welcome to Tavara! We're excited to help you with your caregiving journey.",
    "reminder": "Hi {name}, don't forget to complete your profile to get matched with the best care opportunities!",
    "follow_up": "Hi {name}, how is your experience with Tavara going? We're here to help if you need anything!",
    "general": "Hi {name}, greetings from your Tavara team! We're here to support you on your caregiving journey.",
}
NUDGE_CHANNELS = ["email", "whatsapp", "both"]
