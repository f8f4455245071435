"""Pydantic models for request parameters and bodies."""

from __future__ import annotations

from datetime import date, datetime
from typing import ClassVar, FrozenSet, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .utils.errors import BadRequestError

BikeType = Literal["szosowy", "gravelowy", "mtb", "czasowy"]
BikeStatus = Literal["active", "archived", "sold"]
ServiceType = Literal[
    "lancuch",
    "kaseta",
    "klocki_przod",
    "klocki_tyl",
    "opony",
    "przerzutki",
    "hamulce",
    "przeglad_ogolny",
    "inne",
]
ServiceLocation = Literal["warsztat", "samodzielnie"]
ServiceSort = Literal[
    "service_date_asc",
    "service_date_desc",
    "mileage_asc",
    "mileage_desc",
    "cost_asc",
    "cost_desc",
]
StatsPeriod = Literal["month", "quarter", "year", "all"]
ReminderFilter = Literal["active", "completed", "overdue", "all"]
ReminderSort = Literal["created_at_asc", "created_at_desc", "km_remaining_asc", "km_remaining_desc"]
Units = Literal["metric", "imperial"]


def parse_identifier(value: str, label: str) -> str:
    """Return ``value`` as a canonical UUID string or raise a 400."""

    try:
        return str(UUID(str(value)))
    except ValueError as exc:
        raise BadRequestError(f"Invalid {label} format") from exc


def _not_in_future(value: Optional[date]) -> Optional[date]:
    if value is not None and value > date.today():
        raise ValueError("service_date cannot be in the future")
    return value


def _check_range(from_date: Optional[date], to_date: Optional[date]) -> None:
    if from_date and to_date and from_date > to_date:
        raise ValueError("from_date must be before or equal to to_date")


class _Command(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)


class _PartialCommand(_Command):
    # Fields that may be left out of an update but never cleared with null.
    non_nullable: ClassVar[FrozenSet[str]] = frozenset()

    @model_validator(mode="before")
    @classmethod
    def reject_null_columns(cls, data):
        if isinstance(data, dict):
            nulled = sorted(name for name in cls.non_nullable if name in data and data[name] is None)
            if nulled:
                raise ValueError(f"{', '.join(nulled)} cannot be null")
        return data

    @model_validator(mode="after")
    def require_one_field(self):
        if not self.model_fields_set:
            raise ValueError("At least one field must be provided for update")
        return self

    def changes(self) -> dict:
        return self.model_dump(mode="json", exclude_unset=True)


# ---------------------------------------------------------------------------
# Bikes
# ---------------------------------------------------------------------------
class BikeListParams(BaseModel):
    status: Optional[BikeStatus] = None
    type: Optional[BikeType] = None


class CreateBikeCommand(_Command):
    name: str = Field(..., min_length=1, max_length=50)
    type: BikeType
    purchase_date: Optional[datetime] = None
    current_mileage: int = Field(default=0, ge=0)
    notes: Optional[str] = Field(default=None, max_length=500)


class UpdateBikeCommand(_PartialCommand):
    non_nullable = frozenset({"name", "type", "current_mileage", "status"})

    name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    type: Optional[BikeType] = None
    purchase_date: Optional[datetime] = None
    current_mileage: Optional[int] = Field(default=None, ge=0)
    status: Optional[BikeStatus] = None
    notes: Optional[str] = Field(default=None, max_length=500)


class UpdateMileageCommand(_Command):
    current_mileage: int = Field(..., ge=0)


# ---------------------------------------------------------------------------
# Service records
# ---------------------------------------------------------------------------
class ServiceListParams(BaseModel):
    service_type: Optional[ServiceType] = None
    service_location: Optional[ServiceLocation] = None
    limit: int = Field(default=50, ge=1, le=100)
    offset: int = Field(default=0, ge=0)
    from_date: Optional[date] = None
    to_date: Optional[date] = None
    sort: ServiceSort = "service_date_desc"

    @model_validator(mode="after")
    def check_date_range(self):
        _check_range(self.from_date, self.to_date)
        return self


class ServiceStatsParams(BaseModel):
    period: StatsPeriod = "all"
    from_date: Optional[date] = None
    to_date: Optional[date] = None

    @model_validator(mode="after")
    def check_date_range(self):
        _check_range(self.from_date, self.to_date)
        return self


class CreateServiceCommand(_Command):
    service_date: date
    mileage_at_service: int = Field(..., gt=0)
    service_type: ServiceType
    service_location: Optional[ServiceLocation] = None
    cost: Optional[float] = Field(default=None, ge=0)
    notes: Optional[str] = Field(default=None, max_length=1000)
    create_reminder: bool = False
    reminder_interval_km: Optional[int] = Field(default=None, ge=100, le=10000)

    @field_validator("service_date")
    @classmethod
    def service_date_not_in_future(cls, value):
        return _not_in_future(value)

    @model_validator(mode="after")
    def reminder_needs_interval(self):
        if self.create_reminder and self.reminder_interval_km is None:
            raise ValueError("reminder_interval_km is required when create_reminder is true")
        return self


class UpdateServiceCommand(_PartialCommand):
    non_nullable = frozenset({"service_date", "mileage_at_service", "service_type"})

    service_date: Optional[date] = None
    mileage_at_service: Optional[int] = Field(default=None, gt=0)
    service_type: Optional[ServiceType] = None
    service_location: Optional[ServiceLocation] = None
    cost: Optional[float] = Field(default=None, ge=0)
    notes: Optional[str] = Field(default=None, max_length=1000)

    @field_validator("service_date")
    @classmethod
    def service_date_not_in_future(cls, value):
        return _not_in_future(value)


# ---------------------------------------------------------------------------
# Reminders
# ---------------------------------------------------------------------------
class ReminderListParams(BaseModel):
    status: ReminderFilter = "active"
    service_type: Optional[ServiceType] = None
    sort: ReminderSort = "km_remaining_asc"


class CreateReminderCommand(_Command):
    service_type: ServiceType
    interval_km: int = Field(..., ge=50, le=50000)


class CompleteReminderCommand(_Command):
    completed_service_id: UUID


# ---------------------------------------------------------------------------
# Locations
# ---------------------------------------------------------------------------
class LocationListParams(BaseModel):
    default_only: bool = False


class _LocationFields(_Command):
    @field_validator("country_code", mode="before", check_fields=False)
    @classmethod
    def normalize_country_code(cls, value):
        if isinstance(value, str):
            return value.strip().upper()
        return value


class CreateLocationCommand(_LocationFields):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    city: str = Field(..., min_length=1, max_length=100)
    country_code: str = Field(..., pattern=r"^[A-Z]{2}$")
    is_default: bool = False
    label: Optional[str] = Field(default=None, max_length=50)


class UpdateLocationCommand(_LocationFields, _PartialCommand):
    non_nullable = frozenset({"latitude", "longitude", "city", "country_code", "is_default"})

    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    city: Optional[str] = Field(default=None, min_length=1, max_length=100)
    country_code: Optional[str] = Field(default=None, pattern=r"^[A-Z]{2}$")
    is_default: Optional[bool] = None
    label: Optional[str] = Field(default=None, max_length=50)

    @model_validator(mode="after")
    def coordinates_together(self):
        if (self.latitude is None) != (self.longitude is None):
            raise ValueError("latitude and longitude must be provided together")
        return self


# ---------------------------------------------------------------------------
# Profile
# ---------------------------------------------------------------------------
class ThermalPreferences(_Command):
    general_feeling: Literal["marzlak", "neutralnie", "szybko_mi_goraco"]
    cold_hands: bool
    cold_feet: bool
    cap_threshold_temp: float = Field(..., ge=0, le=30)


class UpdateProfileCommand(_PartialCommand):
    non_nullable = frozenset({"display_name", "share_with_community", "units"})

    display_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    thermal_preferences: Optional[ThermalPreferences] = None
    share_with_community: Optional[bool] = None
    units: Optional[Units] = None
    default_location_id: Optional[UUID] = None
