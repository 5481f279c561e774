from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

CURRENT_USER_ID = "current_user"
SELF_RELATIONSHIP = "self"


@dataclass(frozen=True)
class SelfSubject:
    """The authenticated account holder."""


@dataclass(frozen=True)
class RelativeSubject:
    relative_id: str


Subject = SelfSubject | RelativeSubject


@dataclass
class Patient:
    subject: Subject
    name: str
    phone: str
    address: str
    relationship: str
    age: int | None = None
    national_id: str | None = None
    health_insurance_id: str | None = None

    @property
    def id(self) -> str:
        if isinstance(self.subject, RelativeSubject):
            return self.subject.relative_id
        return CURRENT_USER_ID

    @property
    def is_self(self) -> bool:
        return isinstance(self.subject, SelfSubject)

    def to_payload(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "age": self.age,
            "phone": self.phone,
            "address": self.address,
            "relationship": self.relationship,
            "nationalId": self.national_id or "",
            "healthInsuranceId": self.health_insurance_id or "",
        }


@dataclass
class AppointmentInfo:
    patient: Patient | None
    date: str | None
    time: str | None
    symptoms: str = ""
    additional_services: list = field(default_factory=list)
    created_at: datetime | None = None


@dataclass
class CartLineItem:
    service_id: str
    name: str
    unit_price: int
    quantity: int = 1
    appointment_info: AppointmentInfo | None = None

    @property
    def line_total(self) -> int:
        return self.unit_price * self.quantity


class PaymentMethod(str, Enum):
    VISA = "visa"
    MASTERCARD = "mastercard"
    MOMO = "momo"
    ZALOPAY = "zalopay"
    CASH = "cash"


class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (OrderStatus.COMPLETED, OrderStatus.CANCELLED)

    @property
    def can_cancel(self) -> bool:
        return self is OrderStatus.PENDING


class EmergencyStatus(str, Enum):
    PENDING = "pending"
    REQUESTED = "requested"
    DISPATCHED = "dispatched"
    ARRIVED = "arrived"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (EmergencyStatus.COMPLETED, EmergencyStatus.CANCELLED)

    @property
    def can_cancel(self) -> bool:
        # once a vehicle is dispatched the request can no longer be withdrawn from the app
        return self in (EmergencyStatus.PENDING, EmergencyStatus.REQUESTED)


@dataclass
class Order:
    id: str
    items: list[CartLineItem]
    payment_method: PaymentMethod
    total_price: int
    tax_price: int
    is_paid: bool
    status: OrderStatus
    created_at: datetime | None = None
    paid_at: datetime | None = None
    completed_at: datetime | None = None
    note: str | None = None


@dataclass(frozen=True)
class EmergencyService:
    id: int | str
    name: str
    description: str
    price: int

    def to_payload(self) -> dict:
        return {"id": self.id, "name": self.name, "description": self.description, "price": self.price}


@dataclass
class EmergencyPricing:
    base_cost: int
    services_cost: int
    total_cost: int


@dataclass
class Location:
    address: str
    has_gps: bool = False


@dataclass
class EmergencyRequest:
    id: str
    patient: Patient
    location: Location
    symptoms: str
    selected_services: list[EmergencyService]
    pricing: EmergencyPricing
    status: EmergencyStatus
    priority: str = "high"
    request_time: datetime | None = None
    estimated_arrival_time: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    completed_at: datetime | None = None
    medical_notes: str | None = None


EMERGENCY_SERVICES = [
    EmergencyService(
        id=1,
        name="Stretcher",
        description="Ambulance equipped with a stretcher to move the patient safely",
        price=200000,
    ),
    EmergencyService(
        id=2,
        name="First-aid staff",
        description="Trained medical staff on board for emergency first aid",
        price=500000,
    ),
    EmergencyService(
        id=3,
        name="Accompanying doctor",
        description="A specialist doctor rides along for complex situations",
        price=1000000,
    ),
    EmergencyService(
        id=4,
        name="Breathing support",
        description="Ventilator and respiratory support equipment",
        price=300000,
    ),
]
