from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from timberdesk.application.store import DomainStore
from timberdesk.application.sync import SyncWorker
from timberdesk.repositories.gateway import PersistenceGateway
from timberdesk.repositories.local_cache import LocalCache
from timberdesk.repositories.sqlite_repo import SqliteRepository
from timberdesk.services.auth_service import AuthService
from timberdesk.services.client_service import ClientService
from timberdesk.services.employee_service import EmployeeService
from timberdesk.services.inventory_service import InventoryService
from timberdesk.services.operations_service import OperationsService
from timberdesk.services.purchase_service import PurchaseService
from timberdesk.services.reporting_service import ReportingService
from timberdesk.services.sales_service import SalesService


@dataclass(frozen=True)
class AppContainer:
    gateway: PersistenceGateway
    store: DomainStore
    auth: AuthService
    inventory: InventoryService
    sales: SalesService
    purchases: PurchaseService
    clients: ClientService
    employees: EmployeeService
    reporting: ReportingService
    operations: OperationsService


def build_container(db_path: Path | str, cache_dir: Path | str, load: bool = True) -> AppContainer:
    gateway = PersistenceGateway(SqliteRepository(db_path), LocalCache(cache_dir))
    store = DomainStore(gateway, SyncWorker())
    if load:
        store.load()

    auth = AuthService()
    return AppContainer(
        gateway=gateway,
        store=store,
        auth=auth,
        inventory=InventoryService(store, auth),
        sales=SalesService(store, auth),
        purchases=PurchaseService(store, auth),
        clients=ClientService(store, auth),
        employees=EmployeeService(store, auth),
        reporting=ReportingService(store, auth),
        operations=OperationsService(store, auth),
    )
