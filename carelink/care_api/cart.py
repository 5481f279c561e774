from carelink.care_api.base import CareApi
from carelink.care_api.entities import AppointmentInfo, CartLineItem
from carelink.care_api.errors import NotFoundError
from carelink.care_api.relatives import parse_patient
from carelink.utils import parse_datetime, parse_response, retry_request


@parse_response
def parse_appointment_info(raw_info: dict | None) -> AppointmentInfo | None:
    if not raw_info:
        return None

    return AppointmentInfo(
        patient=parse_patient(raw_info["patient"]) if raw_info.get("patient") else None,
        date=raw_info.get("date") or raw_info.get("appointmentDate"),
        time=raw_info.get("time") or raw_info.get("appointmentTime"),
        symptoms=raw_info.get("symptoms") or "",
        additional_services=raw_info.get("additionalServices") or [],
        created_at=parse_datetime(raw_info.get("createdAt")),
    )


@parse_response
def parse_line_item(raw_item: dict) -> CartLineItem:
    return CartLineItem(
        service_id=str(raw_item["service"]),
        name=raw_item.get("name") or "",
        unit_price=int(raw_item["price"]),
        quantity=int(raw_item["quantity"]),
        appointment_info=parse_appointment_info(raw_item.get("appointmentInfo")),
    )


@parse_response
def parse_cart(raw_cart: dict | None) -> list[CartLineItem]:
    raw_items = (raw_cart or {}).get("items") or []
    return [parse_line_item(raw_item) for raw_item in raw_items]


def appointment_info_payload(info: AppointmentInfo | None) -> dict | None:
    if info is None:
        return None

    return {
        "patient": info.patient.to_payload() if info.patient else None,
        "date": info.date,
        "time": info.time,
        "additionalServices": info.additional_services,
        "symptoms": info.symptoms,
        "createdAt": info.created_at.isoformat() if info.created_at else None,
    }


class CareApiCart(CareApi):

    @retry_request()
    def get_cart(self) -> list[CartLineItem]:
        """
        Returns:
            list[CartLineItem]: empty when the account has no cart yet
        """
        try:
            raw_cart = self._request("GET", "/cart")
        except NotFoundError:
            return []

        return parse_cart(raw_cart)

    def add_to_cart(self, item: CartLineItem):
        payload = {
            "service": item.service_id,
            "name": item.name,
            "price": item.unit_price,
            "quantity": item.quantity,
            "appointmentInfo": appointment_info_payload(item.appointment_info),
        }
        self._request("POST", "/cart/add", json=payload)

    def update_cart_item(self, service_id: str, quantity: int):
        self._request("PUT", "/cart/update", json={"service": service_id, "quantity": quantity})

    def remove_from_cart(self, service_id: str):
        self._request("DELETE", "/cart/remove", json={"service": service_id})

    def clear_cart(self):
        self._request("DELETE", "/cart/clear")
