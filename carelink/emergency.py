import logging
from datetime import datetime, timezone

from carelink import pricing
from carelink.care_api.emergency import CareApiEmergency
from carelink.care_api.entities import (
    EMERGENCY_SERVICES,
    EmergencyPricing,
    EmergencyRequest,
    EmergencyService,
    EmergencyStatus,
    Patient,
)
from carelink.care_api.errors import (
    REFUSED_STATUS_CODES,
    CareError,
    InvalidStateError,
    NotAuthenticatedError,
    ServerError,
    ValidationError,
)
from carelink.config import settings
from carelink.patients import validate_for_submission
from carelink.utils import format_currency

logger = logging.getLogger(__name__)


def emergency_pricing(base_cost: int, selected_services: list[EmergencyService]) -> EmergencyPricing:
    return EmergencyPricing(
        base_cost=base_cost,
        services_cost=pricing.services_cost(selected_services),
        total_cost=pricing.emergency_total(base_cost, selected_services),
    )


def find_services(service_ids: list[int]) -> list[EmergencyService]:
    catalog = {service.id: service for service in EMERGENCY_SERVICES}
    unknown = [service_id for service_id in service_ids if service_id not in catalog]
    if unknown:
        raise ValidationError(["selected_services"], f"Unknown emergency services: {unknown}")
    return [catalog[service_id] for service_id in service_ids]


class EmergencyRequestAggregate:
    """Builds, submits and then follows a single emergency transport request.

    Before `submit` the aggregate only holds the address confirmation. After it,
    `request` is the last snapshot received from the server and is replaced
    wholesale on every refresh.
    """

    def __init__(self, emergency_api: CareApiEmergency, base_cost: int | None = None):
        self.emergency_api = emergency_api
        self.base_cost = base_cost if base_cost is not None else settings.EMERGENCY_BASE_COST

        self.confirmed_address: str | None = None
        self.request: EmergencyRequest | None = None
        self.last_error: CareError | None = None

    @classmethod
    def fetch(cls, emergency_api: CareApiEmergency, emergency_id: str) -> "EmergencyRequestAggregate":
        aggregate = cls(emergency_api)
        aggregate.request = emergency_api.get_emergency_by_id(emergency_id)
        return aggregate

    @property
    def id(self) -> str | None:
        return self.request.id if self.request else None

    @property
    def status(self) -> EmergencyStatus | None:
        return self.request.status if self.request else None

    @property
    def is_terminal(self) -> bool:
        return self.request is not None and self.request.status.is_terminal

    @property
    def can_cancel(self) -> bool:
        return self.request is not None and self.request.status.can_cancel

    def confirm_address(self, address: str) -> str:
        if not (address or "").strip():
            raise ValidationError(["address"], "There is no address to confirm, update the profile first")

        self.confirmed_address = address
        return address

    def submit(
        self,
        patient: Patient,
        address: str,
        symptoms: str,
        selected_services: list[EmergencyService],
        address_confirmed: bool | None = None,
    ) -> EmergencyRequest:
        if self.request is not None:
            raise InvalidStateError(f"Emergency request {self.request.id} was already submitted", self.request.status.value)

        if address_confirmed is None:
            address_confirmed = self.confirmed_address is not None and self.confirmed_address == address

        missing_fields = validate_for_submission(patient, require_address=True).missing_fields
        if not (address or "").strip() and "address" not in missing_fields:
            missing_fields.append("address")
        if not (symptoms or "").strip():
            missing_fields.append("symptoms")
        if not address_confirmed:
            missing_fields.append("address_confirmation")
        if missing_fields:
            raise ValidationError(missing_fields)

        payload = self._build_payload(patient, address, symptoms, selected_services)

        try:
            self.request = self.emergency_api.create_emergency(payload)
        except NotAuthenticatedError as e:
            raise NotAuthenticatedError(e.message, pending_payload=payload) from e

        logger.info(
            "Submitted emergency request %s for patient %s (total=%s VND)",
            self.request.id,
            patient.id,
            format_currency(self.request.pricing.total_cost),
        )
        return self.request

    def refresh(self, silent: bool = False) -> EmergencyRequest | None:
        if self.request is None:
            raise InvalidStateError("Emergency request has not been submitted yet")

        try:
            if silent:
                self.request = self.emergency_api.fetch_emergency(self.request.id)
            else:
                self.request = self.emergency_api.get_emergency_by_id(self.request.id)
        except CareError as e:
            if not silent:
                self.last_error = e
                raise
            logger.warning("Silent refresh of emergency request %s failed: %s", self.request.id, e)
            return self.request

        self.last_error = None
        return self.request

    def cancel(self) -> EmergencyRequest | None:
        if not self.can_cancel:
            raise InvalidStateError(
                "Emergency request can only be cancelled before an ambulance is dispatched",
                status=self.status.value if self.status else None,
            )

        try:
            self.emergency_api.cancel_emergency(self.request.id)
        except ServerError as e:
            if e.status_code not in REFUSED_STATUS_CODES:
                raise
            self.refresh(silent=True)
            raise InvalidStateError(
                f"Emergency request {self.request.id} can no longer be cancelled: {e.message}",
                status=self.request.status.value,
            ) from e

        logger.info("Cancelled emergency request %s", self.request.id)
        return self.refresh(silent=True)

    def _build_payload(
        self, patient: Patient, address: str, symptoms: str, selected_services: list[EmergencyService]
    ) -> dict:
        request_pricing = emergency_pricing(self.base_cost, selected_services)

        return {
            "patient": None if patient.is_self else patient.id,
            "patientInfo": patient.to_payload(),
            "location": {"address": address},
            "symptoms": symptoms,
            "selectedServices": [service.to_payload() for service in selected_services],
            "pricing": {
                "baseCost": request_pricing.base_cost,
                "servicesCost": request_pricing.services_cost,
                "totalCost": request_pricing.total_cost,
            },
            "status": EmergencyStatus.PENDING.value,
            "priority": "high",
            "requestTime": datetime.now(timezone.utc).isoformat(),
        }


def list_emergencies(emergency_api: CareApiEmergency) -> list[EmergencyRequestAggregate]:
    aggregates = []
    for request in emergency_api.get_all_emergencies():
        aggregate = EmergencyRequestAggregate(emergency_api)
        aggregate.request = request
        aggregates.append(aggregate)
    return aggregates
