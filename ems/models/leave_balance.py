from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey
from sqlalchemy.sql import func
from ems.database import Base


class LeaveBalance(Base):
    __tablename__ = "leave_balances"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id", ondelete="CASCADE"), nullable=True, index=True)
    leave_type = Column(String, index=True)  # e.g. "Annual Leave", "Sick Leave"
    year = Column(Integer, index=True)
    total_days = Column(Float, default=0.0)
    used_days = Column(Float, default=0.0)
    remaining_days = Column(Float, default=0.0)  # maintained by direct updates, not recomputed
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
