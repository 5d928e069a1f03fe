from garage.models.domain import (
    AdditionalCharge,
    CategoryKind,
    Customer,
    GarageProfile,
    Invoice,
    InvoiceItem,
    Service,
    Stock,
)
from garage.models.document import StoredDocument

__all__ = [
    "AdditionalCharge",
    "CategoryKind",
    "Customer",
    "GarageProfile",
    "Invoice",
    "InvoiceItem",
    "Service",
    "Stock",
    "StoredDocument",
]
