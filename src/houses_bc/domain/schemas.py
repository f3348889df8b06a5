"""Pydantic v2 schemas for API request validation and external API records.

Request bodies use camelCase on the wire (``quizData``, ``userId``) and
snake_case in Python.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from houses_bc.domain.enums import (
    AppointmentStatus,
    KnowledgeType,
    LeadSource,
    MilestoneStatus,
    OfferStatus,
    PropertyType,
    PurchaseTimeline,
    RateSortKey,
    ResponseStyle,
    UserRole,
)


class CamelModel(BaseModel):
    """Base for request bodies: camelCase aliases, snake_case also accepted."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


class SendOTPRequest(CamelModel):
    phone_number: str


class VerifyOTPRequest(CamelModel):
    phone_number: str
    code: str = Field(min_length=6, max_length=6, pattern=r"^\d{6}$")
    login_type: UserRole = UserRole.CLIENT


class UserResponse(BaseModel):
    """Schema for user API responses."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    phone_number: str
    name: str | None = None
    email: str | None = None
    role: str
    verified: bool


class TokenResponse(BaseModel):
    """Schema for JWT token responses."""

    access_token: str
    token_type: str = "bearer"
    user: UserResponse


# ---------------------------------------------------------------------------
# Quiz
# ---------------------------------------------------------------------------


class QuizData(CamelModel):
    """Affordability quiz answers."""

    income: float = Field(gt=0)
    savings: float = Field(ge=0)
    has_rrsp: bool = Field(validation_alias=AliasChoices("hasRRSP", "hasRrsp", "has_rrsp"))
    property_type: PropertyType
    timeline: PurchaseTimeline


class QuizSubmitRequest(CamelModel):
    quiz_data: QuizData
    user_id: Optional[str] = None
    session_id: Optional[str] = None


class QuizUpdateRequest(CamelModel):
    quiz_data: QuizData


# ---------------------------------------------------------------------------
# Progress
# ---------------------------------------------------------------------------


class MilestoneUpdateRequest(CamelModel):
    milestone_id: str
    status: MilestoneStatus
    data: dict[str, Any] = Field(default_factory=dict)


class MilestoneCompleteRequest(CamelModel):
    data: dict[str, Any] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Rates / calculators
# ---------------------------------------------------------------------------


class PersonalizeRatesRequest(CamelModel):
    credit_score: int = Field(ge=300, le=900)
    down_payment_percent: float = Field(ge=0, le=100)
    income: float = Field(gt=0)
    loan_amount: Optional[float] = Field(default=None, gt=0)
    amortization_years: int = Field(default=25, ge=5, le=30)
    term: int = Field(default=5, ge=1, le=10)
    sort_by: RateSortKey = RateSortKey.RATE


class AffordabilityRequest(CamelModel):
    income: float = Field(gt=0)
    savings: float = Field(ge=0)
    has_rrsp: bool = Field(
        default=False, validation_alias=AliasChoices("hasRRSP", "hasRrsp", "has_rrsp")
    )


class IncentivesRequest(CamelModel):
    property_price: float = Field(gt=0)
    is_new_build: bool = False
    has_rrsp: bool = Field(
        default=False, validation_alias=AliasChoices("hasRRSP", "hasRrsp", "has_rrsp")
    )
    income: Optional[float] = Field(default=None, gt=0)


class MortgageRequest(CamelModel):
    principal: float = Field(gt=0)
    annual_rate: float = Field(ge=0, le=1)
    amortization_years: int = Field(default=25, ge=1, le=40)
    down_payment_percent: Optional[float] = Field(default=None, ge=0, lt=100)


# ---------------------------------------------------------------------------
# Offers
# ---------------------------------------------------------------------------


class OfferDetails(CamelModel):
    offer_price: float = Field(gt=0)
    subjects: list[str] = Field(default_factory=list)
    expiry_date: Optional[str] = None
    possession_date: Optional[str] = None
    deposit: float = Field(default=0, ge=0)
    notes: str = ""


class OfferData(CamelModel):
    property_address: str = Field(min_length=5)
    offer_details: OfferDetails


class OfferCreateRequest(CamelModel):
    offer_data: OfferData
    user_id: Optional[str] = None
    session_id: Optional[str] = None


class OfferUpdateRequest(CamelModel):
    offer_data: OfferData


class OfferReviewRequest(CamelModel):
    status: OfferStatus
    admin_notes: Optional[str] = None


# ---------------------------------------------------------------------------
# Appointments
# ---------------------------------------------------------------------------


class AppointmentCreateRequest(CamelModel):
    property_address: str = Field(min_length=5)
    property_details: dict[str, Any] = Field(default_factory=dict)
    preferred_date: datetime
    preferred_time: str = Field(min_length=1)
    notes: Optional[str] = None
    client_phone: Optional[str] = Field(default=None, min_length=10)
    client_name: Optional[str] = Field(default=None, min_length=2)


class AppointmentUpdateRequest(CamelModel):
    preferred_date: Optional[datetime] = None
    preferred_time: Optional[str] = None
    notes: Optional[str] = None
    admin_notes: Optional[str] = None


class AppointmentStatusRequest(CamelModel):
    status: AppointmentStatus
    admin_notes: Optional[str] = None


# ---------------------------------------------------------------------------
# Leads
# ---------------------------------------------------------------------------


class LeadCreateRequest(CamelModel):
    name: str = Field(min_length=2)
    phone_number: str = Field(min_length=10)
    email: Optional[str] = Field(default=None, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    source: LeadSource
    metadata: dict[str, Any] = Field(default_factory=dict)


class DeletionRequestCreate(CamelModel):
    email: str = Field(pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    reason: Optional[str] = Field(default=None, max_length=2000)

    @field_validator("email", mode="before")
    @classmethod
    def normalise_email(cls, value):
        return value.strip().lower() if isinstance(value, str) else value


# ---------------------------------------------------------------------------
# Chatbot
# ---------------------------------------------------------------------------


class ChatMessageRequest(CamelModel):
    message: str
    session_id: Optional[str] = None


class KnowledgeCreateRequest(CamelModel):
    type: KnowledgeType = KnowledgeType.CUSTOM
    title: str = Field(min_length=1, max_length=255)
    content: str = Field(min_length=1)
    category: str = "general"


class KnowledgeUpdateRequest(CamelModel):
    type: Optional[KnowledgeType] = None
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    content: Optional[str] = Field(default=None, min_length=1)
    category: Optional[str] = None


class ChatbotSettingsUpdateRequest(CamelModel):
    welcome_message: Optional[str] = Field(default=None, min_length=1, max_length=1000)
    response_style: Optional[ResponseStyle] = None
    max_message_length: Optional[int] = Field(default=None, ge=50, le=5000)
    rate_limit_per_hour: Optional[int] = Field(default=None, ge=1, le=1000)
    enabled_features: Optional[list[str]] = None


# ---------------------------------------------------------------------------
# Listing API records
# ---------------------------------------------------------------------------


class ListingSummary(BaseModel):
    """One listing from the property search API. Every field is optional."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    zpid: Optional[str] = None
    address: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("address", "streetAddress")
    )
    city: Optional[str] = None
    state: Optional[str] = None
    zipcode: Optional[str] = None
    price: Optional[float] = Field(
        default=None, validation_alias=AliasChoices("price", "unformattedPrice")
    )
    bedrooms: Optional[float] = None
    bathrooms: Optional[float] = None
    living_area: Optional[float] = Field(
        default=None, validation_alias=AliasChoices("livingArea", "living_area")
    )
    home_type: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("propertyType", "homeType", "home_type")
    )
    img_src: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("imgSrc", "img_src")
    )
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    listing_status: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("listingStatus", "listing_status")
    )
    days_on_zillow: Optional[int] = Field(
        default=None, validation_alias=AliasChoices("daysOnZillow", "days_on_zillow")
    )

    @field_validator("zpid", mode="before")
    @classmethod
    def _zpid_as_str(cls, value):
        return str(value) if value is not None else None

    @field_validator("address", mode="before")
    @classmethod
    def _flatten_address(cls, value):
        # Detail payloads nest the address as an object
        if isinstance(value, dict):
            return value.get("streetAddress")
        return value

    @field_validator("price", mode="before")
    @classmethod
    def _price_as_number(cls, value):
        # Some payloads carry formatted strings like "$649,000"
        if isinstance(value, str):
            digits = "".join(ch for ch in value if ch.isdigit() or ch == ".")
            return float(digits) if digits else None
        return value
