"""Typed async HTTP client for the CargoFlow REST API.

    async with ApiClient("http://localhost:8000") as api:
        await api.login("ops@example.com", "secret123")
        shipments = ShipmentService(api)
        page = await shipments.get_all(status="in_transit")
"""

from app.sdk.client import ApiClient, ApiError, NetworkError, SessionExpiredError  # noqa: F401
from app.sdk.services import (  # noqa: F401
    ClientService,
    ContainerService,
    InvoiceService,
    ReportService,
    SettingsService,
    ShipmentService,
    SupplierService,
    TrackingService,
)
