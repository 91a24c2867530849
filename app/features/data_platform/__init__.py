"""Data platform feature: tenant-scoped tables read by the forecasting core.

- Tenant table: Business
- Catalogue: Product
- Transactions: SalesOrder, SalesOrderItem
"""

from app.features.data_platform.models import (
    Business,
    Product,
    SalesOrder,
    SalesOrderItem,
)

__all__ = [
    "Business",
    "Product",
    "SalesOrder",
    "SalesOrderItem",
]
