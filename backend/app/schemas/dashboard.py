from datetime import datetime

from pydantic import BaseModel


class DashboardStats(BaseModel):
    shipments: dict
    invoices: dict
    revenue: dict
    clients: dict[str, int]
    containers: dict[str, int]


class ActivityOut(BaseModel):
    id: str
    user_id: str
    user_name: str
    action: str
    entity_type: str
    entity_id: str | None
    entity_code: str | None
    summary: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


class TopClient(BaseModel):
    client_id: str
    client_code: str
    company_name: str
    shipment_count: int
    total_revenue: float
