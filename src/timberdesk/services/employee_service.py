from __future__ import annotations

import logging
from dataclasses import replace
from typing import Optional

from timberdesk.application.store import DomainStore
from timberdesk.domain import state
from timberdesk.domain.errors import NotFoundError, ValidationError
from timberdesk.domain.models import Employee, User, new_id
from timberdesk.services.auth_service import AuthService
from timberdesk.services.inputs import clean_text, parse_amount

log = logging.getLogger(__name__)


class EmployeeService:
    def __init__(self, store: DomainStore, auth: AuthService):
        self.store = store
        self.auth = auth

    def list_employees(self, actor: User) -> list[Employee]:
        self.auth.require_action(actor, "manage_employees")
        return list(self.store.state.employees)

    def search(self, actor: User, term: str) -> list[Employee]:
        needle = clean_text(term).lower()
        return [
            e for e in self.list_employees(actor)
            if not needle or needle in e.name.lower() or needle in e.position.lower()
        ]

    def get_employee(self, employee_id: str) -> Employee:
        employee = next((e for e in self.store.state.employees if e.id == employee_id), None)
        if not employee:
            raise NotFoundError("Employee not found.")
        return employee

    def save_employee(
        self,
        actor: User,
        name: str,
        position: str = "",
        salary: object = 0,
        advances: object = 0,
        employee_id: Optional[str] = None,
    ) -> Employee:
        self.auth.require_action(actor, "manage_employees")
        name = clean_text(name)
        if not name:
            raise ValidationError("Employee name is required.")
        pay = parse_amount(salary, "Salary")
        taken = parse_amount(advances, "Advances") if clean_text(advances) else 0.0
        if pay < 0 or taken < 0:
            raise ValidationError("Salary and advances must be >= 0.")

        existing = next((e for e in self.store.state.employees if e.name == name), None)
        if employee_id is not None and existing and existing.id != employee_id:
            raise ValidationError(f"Employee name {name} is already used by another employee.")
        employee = Employee(
            id=employee_id or (existing.id if existing else new_id()),
            name=name,
            position=clean_text(position),
            salary=pay,
            advances=taken,
        )
        self._commit(employee)
        log.info("employee_saved employee_id=%s", employee.id)
        return employee

    def add_advance(self, actor: User, employee_id: str, amount: object) -> Employee:
        """Add to the employee's running advances; the amount is typed by hand."""
        self.auth.require_action(actor, "manage_employees")
        value = parse_amount(amount, "Advance amount")
        if value <= 0:
            raise ValidationError("Advance amount must be > 0.")
        current = self.get_employee(employee_id)
        employee = replace(current, advances=current.advances + value)
        self._commit(employee)
        log.info("advance_added employee_id=%s amount=%.2f net_due=%.2f", employee.id, value, employee.net_due)
        return employee

    def delete_employee(self, actor: User, employee_id: str) -> None:
        self.auth.require_action(actor, "manage_employees")
        self.get_employee(employee_id)
        self.store.apply(state.delete_employee, employee_id)
        self.store.sync(self.store.gateway.employees.delete, employee_id)
        log.info("employee_deleted employee_id=%s actor=%s", employee_id, actor.name)

    def payroll_total(self, actor: User) -> float:
        return sum(e.net_due for e in self.list_employees(actor))

    def _commit(self, employee: Employee) -> None:
        self.store.apply(state.save_employee, employee)
        self.store.sync(self.store.gateway.employees.save, employee)
