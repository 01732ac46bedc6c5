from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class AvailableTimesRes(BaseModel):
    available_times: int = Field(description="当前可用次数")


class MemberInfoRes(BaseModel):
    """会员信息"""
    is_member: bool = Field(description="是否会员")
    member_expires_at: Optional[datetime] = Field(default=None, description="会员到期时间")
    available_times: int = Field(description="当前可用次数")
