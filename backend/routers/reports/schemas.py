from typing import Dict
from utils.response_helpers import CamelModel


class ReportOverview(CamelModel):
    total_users: int
    active_users: int
    users_by_role: Dict[str, int]
    total_orders: int
    orders_by_status: Dict[str, int]
    pending_orders: int
    total_products: int
    active_products: int
    pending_change_requests: int
