from sqlalchemy import Column, Integer, String, Date, DateTime, ForeignKey, Index, Text, text
from sqlalchemy.sql import func
from ems.database import Base


class Attendance(Base):
    """
    One work session: opened by clock-in, closed by clock-out.

    check_in/check_out are naive local wall-clock times; lateness and
    overtime thresholds are compared against them directly.
    """
    __tablename__ = "attendance"
    __table_args__ = (
        # At most one open session per user per day; clock-in relies on this
        Index(
            "uq_attendance_open_session",
            "user_id",
            "date",
            unique=True,
            sqlite_where=text("check_out IS NULL"),
            postgresql_where=text("check_out IS NULL"),
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id", ondelete="SET NULL"), nullable=True, index=True)
    date = Column(Date, nullable=False, index=True)
    check_in = Column(DateTime, nullable=True)
    check_out = Column(DateTime, nullable=True)
    status = Column(String, default="present")
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
