from sqlalchemy import Column, Integer, String, Date, DateTime
from sqlalchemy.sql import func
from ems.database import Base


class Holiday(Base):
    __tablename__ = "holidays"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    date = Column(Date, nullable=False, index=True)
    type = Column(String, default="public")
    description = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
