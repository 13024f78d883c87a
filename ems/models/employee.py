from sqlalchemy import Column, Integer, String, Date, Float, DateTime, Boolean, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from ems.database import Base
import enum


class EmployeeStatus(str, enum.Enum):
    ACTIVE = "Active"
    PROBATION = "Probation"
    TERMINATED = "Terminated"


class Employee(Base):
    __tablename__ = "employees"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, unique=True, index=True)
    full_name = Column(String, nullable=False, index=True)
    email = Column(String, nullable=False, index=True)
    phone = Column(String, nullable=True)
    department = Column(String, nullable=False, index=True)
    position = Column(String, nullable=False)
    status = Column(String, default=EmployeeStatus.ACTIVE.value, nullable=False)  # no transition rules enforced
    join_date = Column(Date, nullable=False)
    address = Column(String, nullable=True)
    date_of_birth = Column(Date, nullable=True)
    manager = Column(String, nullable=True)
    base_salary = Column(Float, default=0.0)
    profile_picture_url = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    user = relationship("User", back_populates="employee_profile")
    emergency_contacts = relationship(
        "EmergencyContact", back_populates="employee", cascade="all, delete-orphan", passive_deletes=True
    )
    employment_history = relationship(
        "EmploymentHistory", back_populates="employee", cascade="all, delete-orphan", passive_deletes=True,
        order_by="EmploymentHistory.start_date.desc()"
    )

    def __repr__(self):
        return f"<Employee {self.full_name} ({self.department})>"


class EmergencyContact(Base):
    __tablename__ = "employee_emergency_contacts"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String, nullable=False)
    phone = Column(String, default="")
    relationship_type = Column("relationship", String, default="")
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    employee = relationship("Employee", back_populates="emergency_contacts")


class EmploymentHistory(Base):
    __tablename__ = "employee_employment_history"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String, nullable=False)
    department = Column(String, nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)
    is_current = Column(Boolean, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    employee = relationship("Employee", back_populates="employment_history")
