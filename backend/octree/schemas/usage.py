"""
Pydantic schemas for edit usage.
"""

from datetime import date

from pydantic import BaseModel


class UsageResponse(BaseModel):
    user_id: str
    edit_count: int
    monthly_edit_count: int
    remaining_edits: int
    remaining_monthly_edits: int
    is_pro: bool
    limit_reached: bool
    monthly_reset_date: date
