from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func
from ems.database import Base


class RecentSearch(Base):
    __tablename__ = "recent_searches"
    __table_args__ = (UniqueConstraint("user_id", "query", name="uq_recent_searches_user_query"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    query = Column(String, nullable=False)
    # Set by the service with sub-second precision so ordering is stable
    searched_at = Column(DateTime(timezone=True), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
