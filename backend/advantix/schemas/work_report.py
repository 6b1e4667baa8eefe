"""
工作日报的Pydantic模型
"""
import datetime as dt
from decimal import Decimal
from typing import Literal, Optional

from pydantic import Field

from advantix.schemas.common import CamelModel

WorkReportStatus = Literal["draft", "submitted", "approved"]


class WorkReportBase(CamelModel):
    title: str = Field(min_length=1)
    description: str = Field(min_length=1)
    hours_worked: Decimal = Field(ge=Decimal("0.1"))
    date: dt.date
    status: WorkReportStatus = "submitted"


class WorkReportCreate(WorkReportBase):
    # 仅管理员可代他人提交；普通用户忽略该字段
    user_id: Optional[str] = None


class WorkReportUpdate(CamelModel):
    title: Optional[str] = None
    description: Optional[str] = None
    hours_worked: Optional[Decimal] = Field(default=None, ge=Decimal("0.1"))
    date: Optional[dt.date] = None
    status: Optional[WorkReportStatus] = None


class WorkReportResponse(WorkReportBase):
    id: str
    user_id: str
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None


class DeleteAllResponse(CamelModel):
    message: str
    deleted_count: int
