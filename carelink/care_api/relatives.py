from carelink.care_api.base import CareApi
from carelink.care_api.entities import SELF_RELATIONSHIP, Patient, RelativeSubject, SelfSubject, Subject
from carelink.utils import parse_response, retry_request

SELF_RELATIONSHIP_LABELS = [SELF_RELATIONSHIP, "Bản thân"]


@parse_response
def parse_patient(raw_patient: dict, subject: Subject | None = None) -> Patient:
    if subject is None:
        relative_id = raw_patient.get("_id") or raw_patient.get("id")
        if relative_id and raw_patient.get("relationship") not in SELF_RELATIONSHIP_LABELS:
            subject = RelativeSubject(relative_id=str(relative_id))
        else:
            subject = SelfSubject()

    return Patient(
        subject=subject,
        name=raw_patient.get("name") or "",
        age=raw_patient.get("age"),
        phone=raw_patient.get("phone") or "",
        address=raw_patient.get("address") or "",
        relationship=raw_patient.get("relationship") or "",
        national_id=raw_patient.get("nationalId") or None,
        health_insurance_id=raw_patient.get("healthInsuranceId") or None,
    )


@parse_response
def parse_relative(raw_relative: dict) -> Patient:
    return parse_patient(raw_relative, RelativeSubject(relative_id=str(raw_relative.get("_id") or raw_relative["id"])))


@parse_response
def parse_relatives(raw_relatives: list) -> list[Patient]:
    return [parse_relative(raw_relative) for raw_relative in raw_relatives or []]


class CareApiRelatives(CareApi):

    @retry_request()
    def get_all_relatives(self) -> list[Patient]:
        return parse_relatives(self._request("GET", "/relatives"))

    @retry_request()
    def get_relative_by_id(self, relative_id: str) -> Patient:
        raw_relative = self._request("GET", f"/relatives/{relative_id}")
        return parse_patient(raw_relative, RelativeSubject(relative_id=relative_id))
