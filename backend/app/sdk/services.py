"""Resource wrappers over ApiClient, one per REST resource.

Each maps the CRUD verbs 1:1 onto endpoints; list filters are passed as
query params and ``None`` values are dropped.
"""

from typing import Any

from app.sdk.client import ApiClient


class ResourceService:
    """get_all / get_by_id / create / update for one resource path."""

    path: str = ""

    def __init__(self, api: ApiClient):
        self.api = api

    def _url(self, *parts: str) -> str:
        return "/".join([self.path, *parts]) if parts else f"{self.path}/"

    async def get_all(self, limit: int = 50, offset: int = 0, **filters: Any) -> dict:
        return await self.api.get(
            self._url(), params={"limit": limit, "offset": offset, **filters},
        )

    async def get_by_id(self, item_id: str) -> dict:
        return await self.api.get(self._url(item_id))

    async def create(self, data: dict) -> dict:
        return await self.api.post(self._url(), json=data)

    async def update(self, item_id: str, data: dict) -> dict:
        return await self.api.put(self._url(item_id), json=data)


class DeletableService(ResourceService):
    """A resource that also has a DELETE endpoint."""

    async def delete(self, item_id: str) -> None:
        await self.api.delete(self._url(item_id))


class ShipmentService(DeletableService):
    path = "/api/shipments"

    async def stats(self) -> dict:
        return await self.api.get(self._url("stats"))

    async def cancel(self, shipment_id: str) -> dict:
        return await self.api.put(self._url(shipment_id, "cancel"))

    async def qr_code(self, shipment_id: str) -> bytes:
        return await self.api.get(self._url(shipment_id, "qr"), raw=True)


class ClientService(DeletableService):
    path = "/api/clients"

    async def stats(self, client_id: str) -> dict:
        return await self.api.get(self._url(client_id, "stats"))

    async def active(self) -> list[dict]:
        return await self.api.get(self._url("active", "list"))


class ContainerService(DeletableService):
    path = "/api/containers"

    async def stats(self) -> dict:
        return await self.api.get(self._url("stats"))

    async def available(self, container_type: str | None = None) -> list[dict]:
        return await self.api.get(self._url("available"), params={"container_type": container_type})


class SupplierService(DeletableService):
    path = "/api/suppliers"

    async def by_service(self, service_type: str) -> list[dict]:
        return await self.api.get(self._url("by-service", service_type))


class InvoiceService(ResourceService):
    """Invoices are cancelled, never deleted."""

    path = "/api/invoices"

    async def stats(self) -> dict:
        return await self.api.get(self._url("stats"))

    async def pay(self, invoice_id: str, payment_method: str | None = None) -> dict:
        return await self.api.put(
            self._url(invoice_id, "pay"), json={"payment_method": payment_method},
        )

    async def cancel(self, invoice_id: str) -> dict:
        return await self.api.put(self._url(invoice_id, "cancel"))

    async def preview(self, shipment_id: str) -> dict:
        return await self.api.get(self._url("shipment", shipment_id, "preview"))

    async def pdf(self, shipment_id: str) -> bytes:
        return await self.api.get(self._url("shipment", shipment_id, "pdf"), raw=True)


class TrackingService(DeletableService):
    path = "/api/tracking"

    async def get_all(self, limit: int = 100, offset: int = 0, **filters: Any) -> list[dict]:
        return await self.api.get(self._url("all"), params={"limit": limit})

    async def get_by_id(self, shipment_id: str) -> list[dict]:
        """Tracking history for one shipment."""
        return await self.api.get(self._url("shipment", shipment_id))

    async def public(self, tracking_number: str) -> dict:
        return await self.api.get(self._url("public", tracking_number))

    async def active_shipments(self) -> list[dict]:
        return await self.api.get(self._url("active-shipments"))


class ReportService(DeletableService):
    path = "/api/reports"

    async def stats(self) -> dict:
        return await self.api.get(self._url("stats"))

    async def generate(
        self,
        type: str,
        format: str = "pdf",
        *,
        start_date: str | None = None,
        end_date: str | None = None,
        name: str | None = None,
        filters: dict | None = None,
    ) -> dict:
        payload = {"type": type, "format": format, "filters": filters or {}}
        for key, value in (("start_date", start_date), ("end_date", end_date), ("name", name)):
            if value is not None:
                payload[key] = value
        return await self.api.post(self._url("generate"), json=payload)

    async def create(self, data: dict) -> dict:
        return await self.api.post(self._url("generate"), json=data)

    async def configure(self, type: str) -> dict:
        return await self.api.post(self._url("configure"), json={"type": type})

    async def download(self, report_id: str) -> bytes:
        return await self.api.get(self._url(report_id, "download"), raw=True)

    async def email(self, report_id: str, recipients: list[str], message: str | None = None) -> dict:
        return await self.api.post(
            self._url(report_id, "email"),
            json={"recipients": recipients, "message": message},
        )


class SettingsService(ResourceService):
    """Settings are keyed by name rather than id."""

    path = "/api/settings"

    async def get_all(self, **filters: Any) -> list[dict]:
        return await self.api.get(self._url(), params=filters or None)

    async def get_by_id(self, key: str) -> dict:
        return await self.api.get(self._url(key))

    async def create(self, data: dict) -> dict:
        body = {k: v for k, v in data.items() if k != "key"}
        return await self.api.put(self._url(data["key"]), json=body)

    async def update(self, key: str, data: dict) -> dict:
        return await self.api.put(self._url(key), json=data)

    async def company(self) -> dict:
        return await self.api.get(self._url("company"))

    async def update_company(self, data: dict) -> dict:
        return await self.api.put(self._url("company"), json=data)

    async def system(self) -> dict:
        return await self.api.get(self._url("system"))

    async def update_system(self, data: dict) -> dict:
        return await self.api.put(self._url("system"), json=data)

    async def notifications(self) -> dict:
        return await self.api.get(self._url("notifications"))

    async def update_notifications(self, data: dict) -> dict:
        return await self.api.put(self._url("notifications"), json=data)

    async def change_password(self, current: str, new: str, confirm: str) -> dict:
        data = await self.api.put(
            self._url("password"),
            json={"current_password": current, "new_password": new, "confirm_password": confirm},
        )
        self.api.set_session(data)
        return data
