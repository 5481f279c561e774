import logging
from dataclasses import dataclass, field

from carelink.care_api.base import Session
from carelink.care_api.entities import SELF_RELATIONSHIP, Patient, SelfSubject
from carelink.care_api.errors import CareError, NotAuthenticatedError, NotFoundError
from carelink.care_api.relatives import CareApiRelatives

logger = logging.getLogger(__name__)


@dataclass
class ValidationResult:
    ok: bool
    missing_fields: list[str] = field(default_factory=list)


def resolve_current_user_as_patient(profile: dict | None) -> Patient:
    profile = profile or {}

    return Patient(
        subject=SelfSubject(),
        name=profile.get("name") or "",
        age=profile.get("age"),
        phone=profile.get("phone") or "",
        address=profile.get("address") or "",
        relationship=SELF_RELATIONSHIP,
        national_id=profile.get("nationalId") or None,
        health_insurance_id=profile.get("healthInsuranceId") or None,
    )


def validate_for_submission(patient: Patient | None, require_address: bool = False) -> ValidationResult:
    """Check the fields a request needs before it can be sent.

    Name and phone are always required, address only for emergency transport.
    Never raises; the caller decides whether to send the user to edit the profile.
    """
    required_fields = ["name", "phone"]
    if require_address:
        required_fields.append("address")

    if patient is None:
        return ValidationResult(ok=False, missing_fields=["patient"])

    missing_fields = [name for name in required_fields if not (getattr(patient, name) or "").strip()]
    return ValidationResult(ok=not missing_fields, missing_fields=missing_fields)


class PatientSelector:
    """Holds the account holder and their relatives, and which of them a request is for."""

    def __init__(self, session: Session, relatives_api: CareApiRelatives):
        self.session = session
        self.relatives_api = relatives_api

        self.current_user: Patient | None = None
        self.relatives: list[Patient] = []
        self.selected: Patient | None = None

    def load(self) -> list[Patient]:
        if not self.session.get_token():
            raise NotAuthenticatedError("Login is required to choose a patient")

        self.current_user = resolve_current_user_as_patient(self.session.get_user_info())

        try:
            self.relatives = self.relatives_api.get_all_relatives()
        except NotAuthenticatedError:
            raise
        except CareError as e:
            # the account may simply have no relatives yet
            logger.warning("Relatives list is unavailable: %s", e)
            self.relatives = []

        candidates = self.list_candidates()
        selected_id = self.selected.id if self.selected else None
        self.selected = next((patient for patient in candidates if patient.id == selected_id), self.current_user)

        return candidates

    def list_candidates(self) -> list[Patient]:
        candidates = []
        if self.current_user is not None:
            candidates.append(self.current_user)
        candidates.extend(self.relatives)
        return candidates

    def select(self, patient_id: str) -> Patient:
        for patient in self.list_candidates():
            if patient.id == patient_id:
                self.selected = patient
                logger.info("Selected patient %s", patient_id)
                return patient

        raise NotFoundError(f"Patient {patient_id} is not the account holder or one of their relatives")

    def validate(self, require_address: bool = False) -> ValidationResult:
        return validate_for_submission(self.selected, require_address=require_address)
