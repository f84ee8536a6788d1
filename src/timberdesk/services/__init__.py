from .auth_service import AuthService
from .inventory_service import InventoryService
from .sales_service import SalesService
from .purchase_service import PurchaseService
from .client_service import ClientService
from .employee_service import EmployeeService
from .reporting_service import ReportingService
from .operations_service import OperationsService

__all__ = [
    "AuthService",
    "InventoryService",
    "SalesService",
    "PurchaseService",
    "ClientService",
    "EmployeeService",
    "ReportingService",
    "OperationsService",
]
