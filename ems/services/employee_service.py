import logging
from typing import Any, Dict, List

from ems.core.cache import Entity
from ems.core.exceptions import NotFoundError, ValidationFailedError
from ems.core.schemas import Notice
from ems.models.employee import EmergencyContact, Employee, EmploymentHistory
from ems.schemas.employee import (
    EmployeeCreate,
    EmployeeResponse,
    EmployeeSelfUpdate,
    EmployeeUpdate,
)
from ems.services.base import CrudService, MutationResult

logger = logging.getLogger(__name__)


class EmployeeService(CrudService):
    model = Employee
    entity = Entity.EMPLOYEES
    label = "employee"
    response_schema = EmployeeResponse

    def list_employees(self) -> List[EmployeeResponse]:
        return self.fetch()

    def get_employee(self, employee_id: int) -> EmployeeResponse:
        return self.to_response(self.get_or_404(employee_id))

    def create_employee(self, data: EmployeeCreate) -> MutationResult:
        """
        Create the employee, its emergency contact and the opening
        employment-history row as a single unit of work.
        """
        values = data.model_dump(exclude={"emergency_contact"})
        values["status"] = data.status.value
        employee = Employee(**values)
        self.db.add(employee)
        self.db.flush()

        contact = data.emergency_contact
        if contact and contact.name:
            self.db.add(EmergencyContact(
                employee_id=employee.id,
                name=contact.name,
                phone=contact.phone,
                relationship_type=contact.relationship,
            ))
        self.db.add(EmploymentHistory(
            employee_id=employee.id,
            title=data.position,
            department=data.department,
            start_date=data.join_date,
            is_current=True,
        ))

        self.commit_or_fail(self.entity, "Failed to add employee")
        self.db.refresh(employee)
        logger.info(f"Added employee {employee.id}")
        return MutationResult(
            self.to_response(employee),
            Notice(title="Success", description=f"Employee {data.full_name} added successfully"),
        )

    def update_employee(self, employee_id: int, data: EmployeeUpdate) -> MutationResult:
        values = self._clean_updates(data.model_dump(exclude_unset=True))
        return self.update(
            employee_id,
            values,
            Notice(title="Success", description="Employee updated successfully"),
        )

    def delete_employee(self, employee_id: int) -> MutationResult:
        # Contacts and history go with the row (ON DELETE CASCADE)
        return self.delete(
            employee_id,
            Notice(title="Success", description="Employee deleted successfully"),
        )

    def bulk_delete(self, ids: List[int]) -> int:
        rows = self.db.query(Employee).filter(Employee.id.in_(ids)).all()
        missing = set(ids) - {row.id for row in rows}
        if missing:
            raise NotFoundError(f"Employee {sorted(missing)[0]}")
        for row in rows:
            self.db.delete(row)
        self.commit_or_fail(self.entity, "Failed to delete employees")
        logger.info(f"Bulk deleted {len(rows)} employees")
        return len(rows)

    def bulk_update(self, ids: List[int], updates: Dict[str, Any]) -> int:
        data = EmployeeUpdate.model_validate(updates)
        values = self._clean_updates(data.model_dump(exclude_unset=True))
        if not values:
            raise ValidationFailedError("No valid fields to update", title="Bulk Update Failed")
        rows = self.db.query(Employee).filter(Employee.id.in_(ids)).all()
        for row in rows:
            for field, value in values.items():
                setattr(row, field, value)
        self.commit_or_fail(self.entity, "Failed to update employees")
        logger.info(f"Bulk updated {len(rows)} employees: {sorted(values)}")
        return len(rows)

    # --- Self-service ---

    def get_own(self, user_id: int) -> Employee:
        employee = self.db.query(Employee).filter(Employee.user_id == user_id).first()
        if employee is None:
            raise NotFoundError("Employee record")
        return employee

    def update_own(self, user_id: int, data: EmployeeSelfUpdate) -> MutationResult:
        employee = self.get_own(user_id)
        values = data.model_dump(exclude_unset=True, exclude={"emergency_contact"})
        for field, value in values.items():
            setattr(employee, field, value)

        contact = data.emergency_contact
        if contact is not None:
            existing = employee.emergency_contacts[0] if employee.emergency_contacts else None
            if existing is None:
                self.db.add(EmergencyContact(
                    employee_id=employee.id,
                    name=contact.name,
                    phone=contact.phone,
                    relationship_type=contact.relationship,
                ))
            else:
                existing.name = contact.name
                existing.phone = contact.phone
                existing.relationship_type = contact.relationship

        self.commit_or_fail(self.entity, "Failed to update your details", title="Update Failed")
        self.db.refresh(employee)
        return MutationResult(
            employee,
            Notice(title="Profile Updated", description="Your details have been saved."),
        )

    @staticmethod
    def _clean_updates(values: Dict[str, Any]) -> Dict[str, Any]:
        if values.get("status") is not None:
            values["status"] = values["status"].value
        # Required columns cannot be blanked by a partial update
        for required in ("full_name", "email", "department", "position", "join_date"):
            if required in values and values[required] is None:
                values.pop(required)
        return values
