# dealership/models.py
"""SQLAlchemy ORM models for persisted entities.

`Vehicle` is the sellable inventory unit, `ImportJob` the audit row of a
single connector invocation and `Lead` a contact request left on a vehicle
page. List-valued columns use JSONB on PostgreSQL and plain JSON elsewhere.
"""
import enum
import uuid
from sqlalchemy import (
    Boolean, Column, ForeignKey, Integer, JSON, Numeric, String, Text, TIMESTAMP,
    UniqueConstraint, func, Index,
)
from sqlalchemy.dialects.postgresql import JSONB
from .db import Base

JSONList = JSON().with_variant(JSONB, "postgresql")

MANUAL_SOURCE = "manual"


class VehicleType(str, enum.Enum):
    NEW = "NEW"
    USED = "USED"


class VehicleStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    RESERVED = "RESERVED"
    SOLD = "SOLD"


class Currency(str, enum.Enum):
    PLN = "PLN"
    EUR = "EUR"


class ImportJobStatus(str, enum.Enum):
    RUNNING = "RUNNING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


def _uuid():
    return str(uuid.uuid4())


class Vehicle(Base):
    __tablename__ = "vehicles"
    __table_args__ = (
        UniqueConstraint("source", "source_external_id", name="uq_vehicles_source_external_id"),
    )

    id = Column(String(36), primary_key=True, default=_uuid)
    slug = Column(String(255), nullable=False, unique=True, index=True)
    source = Column(String(100), nullable=False, default=MANUAL_SOURCE)
    source_external_id = Column(String(255))

    type = Column(String(10), nullable=False)
    status = Column(String(10), nullable=False, default=VehicleStatus.ACTIVE.value)

    make = Column(String(100), nullable=False)
    model = Column(String(100), nullable=False)
    trim = Column(String(200))
    year = Column(Integer, nullable=False)
    mileage = Column(Integer)
    fuel = Column(String(50))
    gearbox = Column(String(50))
    body_type = Column(String(50))
    drive = Column(String(50))
    power_hp = Column(Integer)
    engine_cc = Column(Integer)
    color = Column(String(50))
    vin = Column(String(17))
    doors = Column(Integer)
    seats = Column(Integer)

    price_gross = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(3), nullable=False, default=Currency.PLN.value)
    installment_amount = Column(Numeric(12, 2))
    installment_term_months = Column(Integer)
    installment_down_payment = Column(Numeric(12, 2))
    installment_balloon = Column(Numeric(12, 2))

    location = Column(String(100))
    description_pl = Column(Text)
    description_en = Column(Text)
    has_en = Column(Boolean, nullable=False, default=False)

    images = Column(JSONList, nullable=False, default=list)
    videos = Column(JSONList, nullable=False, default=list)
    features = Column(JSONList, nullable=False, default=list)

    promoted = Column(Boolean, nullable=False, default=False)
    promoted_until = Column(TIMESTAMP(timezone=True))

    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now())
    published_at = Column(TIMESTAMP(timezone=True))

    def __repr__(self):
        return f"<Vehicle {self.slug} {self.status}>"


class ImportJob(Base):
    __tablename__ = "import_jobs"

    id = Column(String(36), primary_key=True, default=_uuid)
    connector = Column(String(100), nullable=False, index=True)
    status = Column(String(10), nullable=False, default=ImportJobStatus.RUNNING.value)
    started_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())
    finished_at = Column(TIMESTAMP(timezone=True))
    new_count = Column(Integer, nullable=False, default=0)
    updated_count = Column(Integer, nullable=False, default=0)
    error_count = Column(Integer, nullable=False, default=0)
    errors = Column(JSONList)

    def __repr__(self):
        return f"<ImportJob {self.connector} {self.status}>"


class Lead(Base):
    __tablename__ = "leads"

    id = Column(String(36), primary_key=True, default=_uuid)
    vehicle_id = Column(String(36), ForeignKey("vehicles.id"), nullable=False, index=True)
    type = Column(String(20), nullable=False, default="inquiry")
    name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False)
    phone = Column(String(30))
    message = Column(Text)
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())


Index("idx_vehicles_status_type", Vehicle.status, Vehicle.type)
Index("idx_vehicles_price", Vehicle.price_gross)
Index("idx_vehicles_year", Vehicle.year)
Index("idx_import_jobs_started_at", ImportJob.started_at)
