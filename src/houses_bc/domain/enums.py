"""Domain enumerations for the Houses BC journey platform.

All enums use the (str, Enum) pattern to ensure JSON serialization compatibility.
"""

from enum import Enum


class UserRole(str, Enum):
    """Portal a user signed in to."""

    ADMIN = "admin"
    CLIENT = "client"


class PropertyType(str, Enum):
    """Home type chosen in the affordability quiz."""

    CONDO = "condo"
    TOWNHOME = "townhome"
    DETACHED = "detached"


class PurchaseTimeline(str, Enum):
    """How soon (in months) the client plans to buy."""

    ONE_TO_THREE = "1-3"
    THREE_TO_SIX = "3-6"
    SIX_TO_TWELVE = "6-12"


# ---------------------------------------------------------------------------
# Journey milestones
# ---------------------------------------------------------------------------


class MilestoneId(str, Enum):
    """The 8 ordered steps of the home-buying journey."""

    CREDIT_SCORE = "step1_creditScore"
    FHSA = "step2_fhsa"
    PRE_APPROVAL = "step3_preApproval"
    INCENTIVES = "step4_incentives"
    NEIGHBORHOODS = "step5_neighborhoods"
    SEARCH_PROPERTIES = "step6_searchProperties"
    BOOK_VIEWING = "step7_bookViewing"
    MAKE_OFFER = "step8_makeOffer"


class MilestoneStatus(str, Enum):
    """Status persisted on a milestone entry."""

    PENDING = "pending"
    AVAILABLE = "available"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class ResolvedStatus(str, Enum):
    """Status shown to the client after applying the unlock chain."""

    LOCKED = "locked"
    AVAILABLE = "available"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class StatusSource(str, Enum):
    """Whether a resolved status came from the record or the unlock chain."""

    STORED = "stored"
    DERIVED = "derived"


# ---------------------------------------------------------------------------
# Leads / appointments / offers
# ---------------------------------------------------------------------------


class LeadSource(str, Enum):
    """Page that hosted the lead capture modal."""

    LANDING = "landing"
    MORTGAGE = "mortgage"
    INCENTIVES = "incentives"
    PRICING = "pricing"
    BLOG = "blog"
    PROPERTIES = "properties"
    CALCULATOR = "calculator"
    GUIDE = "guide"


class AppointmentStatus(str, Enum):
    """Viewing appointment status. Only admins change it."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class OfferStatus(str, Enum):
    """Purchase offer lifecycle."""

    DRAFT = "draft"
    SUBMITTED = "submitted"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class OfferActor(str, Enum):
    """Who is attempting an offer status change."""

    CLIENT = "client"
    ADMIN = "admin"


# ---------------------------------------------------------------------------
# Rates / chat
# ---------------------------------------------------------------------------


class RateType(str, Enum):
    FIXED = "fixed"
    VARIABLE = "variable"


class ApprovalOdds(str, Enum):
    """Likelihood a lender approves the file."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class RateSortKey(str, Enum):
    """Ordering of the personalized rate table."""

    RATE = "rate"
    PAYMENT = "payment"
    APPROVAL_ODDS = "approvalOdds"


class ChatRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class KnowledgeType(str, Enum):
    """Category of a chatbot knowledge base entry."""

    MARKET_DATA = "market_data"
    CUSTOM = "custom"
    INCENTIVES = "incentives"
    FAQ = "faq"


class ResponseStyle(str, Enum):
    """Tone the chat assistant is told to answer in."""

    FRIENDLY = "friendly"
    PROFESSIONAL = "professional"
    CASUAL = "casual"
