from carelink.care_api.base import CareApi
from carelink.care_api.entities import (
    EmergencyPricing,
    EmergencyRequest,
    EmergencyService,
    EmergencyStatus,
    Location,
    RelativeSubject,
    SelfSubject,
)
from carelink.care_api.relatives import parse_patient
from carelink.utils import parse_datetime, parse_response, retry_request


@parse_response
def parse_emergency(raw_emergency: dict) -> EmergencyRequest:
    raw_location = raw_emergency.get("location") or {}
    raw_pricing = raw_emergency.get("pricing") or {}

    subject = RelativeSubject(relative_id=str(raw_emergency["patient"])) if raw_emergency.get("patient") else SelfSubject()

    return EmergencyRequest(
        id=str(raw_emergency.get("_id") or raw_emergency["id"]),
        patient=parse_patient(raw_emergency.get("patientInfo") or {}, subject),
        location=Location(address=raw_location.get("address") or "", has_gps=bool(raw_location.get("hasGPS"))),
        symptoms=raw_emergency.get("symptoms") or "",
        selected_services=[
            EmergencyService(
                id=raw_service["id"],
                name=raw_service.get("name") or "",
                description=raw_service.get("description") or "",
                price=int(raw_service.get("price") or 0),
            )
            for raw_service in raw_emergency.get("selectedServices") or []
        ],
        pricing=EmergencyPricing(
            base_cost=int(raw_pricing.get("baseCost") or 0),
            services_cost=int(raw_pricing.get("servicesCost") or 0),
            total_cost=int(raw_pricing.get("totalCost") or 0),
        ),
        status=EmergencyStatus(raw_emergency["status"]),
        priority=raw_emergency.get("priority") or "high",
        request_time=parse_datetime(raw_emergency.get("requestTime")),
        estimated_arrival_time=parse_datetime(raw_emergency.get("estimatedArrivalTime")),
        created_at=parse_datetime(raw_emergency.get("createdAt")),
        updated_at=parse_datetime(raw_emergency.get("updatedAt")),
        completed_at=parse_datetime(raw_emergency.get("completedAt")),
        medical_notes=raw_emergency.get("medicalNotes"),
    )


@parse_response
def parse_emergencies(raw_emergencies: list) -> list[EmergencyRequest]:
    return [parse_emergency(raw_emergency) for raw_emergency in raw_emergencies or []]


class CareApiEmergency(CareApi):

    @retry_request()
    def get_all_emergencies(self) -> list[EmergencyRequest]:
        return parse_emergencies(self._request("GET", "/emergency"))

    @retry_request()
    def get_emergency_by_id(self, emergency_id: str) -> EmergencyRequest:
        return self.fetch_emergency(emergency_id)

    def fetch_emergency(self, emergency_id: str) -> EmergencyRequest:
        """Single attempt, for background polling."""
        raw_emergency = self._request("GET", f"/emergency/{emergency_id}")
        return parse_emergency(raw_emergency)

    def create_emergency(self, payload: dict) -> EmergencyRequest:
        raw_emergency = self._request("POST", "/emergency", json=payload)
        return parse_emergency(raw_emergency)

    def cancel_emergency(self, emergency_id: str):
        self._request("DELETE", f"/emergency/{emergency_id}")
