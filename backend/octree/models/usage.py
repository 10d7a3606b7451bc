"""
Per-user edit usage counters backing the edit-limit gate.
"""

from datetime import date

from sqlalchemy import Boolean, Column, Date, Integer, String

from octree.core.database import Base


class UserUsage(Base):
    __tablename__ = "user_usage"

    user_id = Column(String(64), primary_key=True)

    edit_count = Column(Integer, nullable=False, default=0)
    monthly_edit_count = Column(Integer, nullable=False, default=0)
    monthly_reset_date = Column(Date, nullable=False, default=date.today)

    is_pro = Column(Boolean, nullable=False, default=False)
