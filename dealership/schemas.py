# dealership/schemas.py
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator
from typing import Dict, List, Literal, Optional
from datetime import date, datetime

from .models import Currency, VehicleStatus, VehicleType

SortOption = Literal["newest", "cheapest", "expensive", "low_mileage", "year_desc", "promoted"]


# columns a partial update may change but never clear
REQUIRED_ON_UPDATE = (
    "type", "status", "make", "model", "year", "price_gross", "currency",
    "images", "videos", "features", "promoted",
)


def _max_year():
    return date.today().year + 2


class VehicleBase(BaseModel):
    make: str = Field(..., min_length=1, max_length=100)
    model: str = Field(..., min_length=1, max_length=100)
    trim: Optional[str] = Field(None, max_length=200)
    year: int = Field(..., ge=1900)
    mileage: Optional[int] = Field(None, ge=0)
    fuel: Optional[str] = Field(None, max_length=50)
    gearbox: Optional[str] = Field(None, max_length=50)
    body_type: Optional[str] = Field(None, max_length=50)
    drive: Optional[str] = Field(None, max_length=50)
    power_hp: Optional[int] = Field(None, ge=1, le=2000)
    engine_cc: Optional[int] = None
    color: Optional[str] = Field(None, max_length=50)
    vin: Optional[str] = Field(None, max_length=17)
    doors: Optional[int] = Field(None, ge=1, le=9)
    seats: Optional[int] = Field(None, ge=1, le=99)
    price_gross: float = Field(..., ge=0)
    currency: Currency = Currency.PLN
    installment_amount: Optional[float] = None
    installment_term_months: Optional[int] = None
    installment_down_payment: Optional[float] = None
    installment_balloon: Optional[float] = None
    location: Optional[str] = Field(None, max_length=100)
    description_pl: Optional[str] = Field(None, max_length=10000)
    description_en: Optional[str] = Field(None, max_length=10000)
    images: List[str] = Field(default_factory=list, max_length=30)
    videos: List[str] = Field(default_factory=list, max_length=5)
    features: List[str] = Field(default_factory=list, max_length=100)
    promoted: bool = False
    promoted_until: Optional[datetime] = None

    @field_validator("year")
    @classmethod
    def _year_not_far_future(cls, value):
        if value is not None and value > _max_year():
            raise ValueError(f"year must be at most {_max_year()}")
        return value


class VehicleCreate(VehicleBase):
    type: VehicleType
    status: VehicleStatus = VehicleStatus.ACTIVE


class VehicleUpdate(BaseModel):
    """Partial admin edit; only fields present in the request are applied."""
    type: Optional[VehicleType] = None
    status: Optional[VehicleStatus] = None
    make: Optional[str] = Field(None, min_length=1, max_length=100)
    model: Optional[str] = Field(None, min_length=1, max_length=100)
    trim: Optional[str] = Field(None, max_length=200)
    year: Optional[int] = Field(None, ge=1900)
    mileage: Optional[int] = Field(None, ge=0)
    fuel: Optional[str] = Field(None, max_length=50)
    gearbox: Optional[str] = Field(None, max_length=50)
    body_type: Optional[str] = Field(None, max_length=50)
    drive: Optional[str] = Field(None, max_length=50)
    power_hp: Optional[int] = Field(None, ge=1, le=2000)
    engine_cc: Optional[int] = None
    color: Optional[str] = Field(None, max_length=50)
    vin: Optional[str] = Field(None, max_length=17)
    doors: Optional[int] = Field(None, ge=1, le=9)
    seats: Optional[int] = Field(None, ge=1, le=99)
    price_gross: Optional[float] = Field(None, ge=0)
    currency: Optional[Currency] = None
    installment_amount: Optional[float] = None
    installment_term_months: Optional[int] = None
    installment_down_payment: Optional[float] = None
    installment_balloon: Optional[float] = None
    location: Optional[str] = Field(None, max_length=100)
    description_pl: Optional[str] = Field(None, max_length=10000)
    description_en: Optional[str] = Field(None, max_length=10000)
    images: Optional[List[str]] = Field(None, max_length=30)
    videos: Optional[List[str]] = Field(None, max_length=5)
    features: Optional[List[str]] = Field(None, max_length=100)
    promoted: Optional[bool] = None
    promoted_until: Optional[datetime] = None

    @model_validator(mode="after")
    def _required_columns_not_cleared(self):
        cleared = sorted(f for f in REQUIRED_ON_UPDATE if f in self.model_fields_set and getattr(self, f) is None)
        if cleared:
            raise ValueError(f"fields cannot be null: {', '.join(cleared)}")
        return self


class VehicleListItem(BaseModel):
    id: str
    slug: str
    type: VehicleType
    status: VehicleStatus
    make: str
    model: str
    trim: Optional[str] = None
    year: int
    mileage: Optional[int] = None
    fuel: Optional[str] = None
    gearbox: Optional[str] = None
    body_type: Optional[str] = None
    power_hp: Optional[int] = None
    color: Optional[str] = None
    price_gross: float
    currency: Currency
    installment_amount: Optional[float] = None
    installment_term_months: Optional[int] = None
    location: Optional[str] = None
    images: List[str] = []
    promoted: bool = False
    has_en: bool = False
    published_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class VehicleOut(VehicleListItem):
    source: str
    drive: Optional[str] = None
    engine_cc: Optional[int] = None
    vin: Optional[str] = None
    doors: Optional[int] = None
    seats: Optional[int] = None
    installment_down_payment: Optional[float] = None
    installment_balloon: Optional[float] = None
    description_pl: Optional[str] = None
    description_en: Optional[str] = None
    features: List[str] = []
    videos: List[str] = []
    promoted_until: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class VehiclePage(BaseModel):
    data: List[VehicleListItem]
    total: int
    page: int
    limit: int
    pages: int


class VehicleFilter(BaseModel):
    type: Optional[VehicleType] = None
    make: List[str] = []
    model: List[str] = []
    fuel: List[str] = []
    gearbox: List[str] = []
    body_type: List[str] = []
    drive: List[str] = []
    location: List[str] = []
    year_from: Optional[int] = None
    year_to: Optional[int] = None
    mileage_from: Optional[int] = None
    mileage_to: Optional[int] = None
    price_from: Optional[float] = None
    price_to: Optional[float] = None
    only_en: bool = False
    q: Optional[str] = None
    sort: SortOption = "newest"
    page: int = Field(1, ge=1)
    limit: int = Field(24, ge=1, le=50)


class FilterOptions(BaseModel):
    makes: List[str]
    make_models: Dict[str, List[str]]
    fuels: List[str]
    gearboxes: List[str]
    body_types: List[str]
    drives: List[str]
    locations: List[str]


class VehicleCreated(BaseModel):
    ok: bool = True
    id: str
    slug: str


class LeadCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    phone: Optional[str] = Field(None, max_length=30)
    message: Optional[str] = Field(None, max_length=2000)
    type: Literal["inquiry", "test_drive"] = "inquiry"
    honeypot: Optional[str] = None


class ImportRequest(BaseModel):
    connector: Optional[str] = None


class ImportRunResult(BaseModel):
    connector: str
    new_count: int
    updated_count: int
    error_count: int
    errors: List[str]
    job_id: Optional[str]


class ImportJobOut(BaseModel):
    id: str
    connector: str
    status: str
    started_at: Optional[datetime]
    finished_at: Optional[datetime]
    new_count: int
    updated_count: int
    error_count: int
    errors: Optional[List[str]] = None
    model_config = ConfigDict(from_attributes=True)


class ImportResponse(BaseModel):
    ok: bool = True
    skipped: bool = False
    results: List[ImportRunResult] = []
