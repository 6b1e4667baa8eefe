"""
公共 Pydantic 基类

接口字段使用 camelCase（响应按别名输出），请求同时接受 camelCase 与 snake_case。
Decimal 字段在 JSON 中序列化为字符串，避免浮点误差。
"""
from typing import Generic, List, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class MessageResponse(CamelModel):
    message: str


class CountResponse(CamelModel):
    message: str
    count: int


class ImportResult(CamelModel):
    """逐行导入结果：部分成功"""
    imported: int
    errors: List[str] = []


class Paginated(CamelModel, Generic[T]):
    data: List[T]
    total: int
    page: int
    page_size: int
    total_pages: int
