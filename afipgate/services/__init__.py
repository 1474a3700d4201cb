"""Per-service adapters built on the web-service gateway."""

from .base import GenericWebService, ServiceAdapter, format_date
from .electronic_billing import ElectronicBilling
from .export_billing import ExportElectronicBilling

__all__ = [
    "ElectronicBilling",
    "ExportElectronicBilling",
    "GenericWebService",
    "ServiceAdapter",
    "format_date",
]
