"""
数据处理工具函数
金额、日期、月份的解析与计算（金额全程使用 Decimal）
"""
import calendar
import re
from datetime import date, datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Optional, Tuple

CENT = Decimal("0.01")
RATE_STEP = Decimal("0.000001")
ZERO = Decimal("0")

_MONTH_RE = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


def to_decimal(value: Any) -> Decimal:
    """
    把输入转换为 Decimal

    参数:
        value: str / int / float / Decimal

    返回:
        Decimal；无法解析时抛出 ValueError

    示例:
        >>> to_decimal("10.5")
        Decimal('10.5')
    """
    if value is None:
        raise ValueError("amount is required")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, float):
        # 经由 str 转换，避免二进制浮点误差
        result = Decimal(str(value))
    else:
        try:
            result = Decimal(str(value).strip().replace(",", ""))
        except InvalidOperation:
            raise ValueError(f"invalid amount: {value!r}")
    if not result.is_finite():
        raise ValueError(f"invalid amount: {value!r}")
    return result


def quantize_money(value: Decimal) -> Decimal:
    """保留两位小数（四舍五入）"""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def quantize_rate(value: Decimal) -> Decimal:
    """汇率保留六位小数；换算金额必须基于这个值计算"""
    return value.quantize(RATE_STEP, rounding=ROUND_HALF_UP)


def percentage(part: Decimal, total: Decimal) -> Decimal:
    """
    计算占比

    公式：part / total × 100，total 为 0 时返回 0

    示例:
        >>> percentage(Decimal("40"), Decimal("50"))
        Decimal('80.00')
    """
    if not total:
        return Decimal("0.00")
    return quantize_money(part / total * 100)


def to_utc_day(value: Any) -> date:
    """
    归一化为 UTC 自然日

    - date: 原样返回
    - 带时区的 datetime: 先换算到 UTC 再取日期
    - 无时区 datetime: 视为 UTC
    - 字符串: ISO 格式（YYYY-MM-DD 或完整时间戳）
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            raise ValueError("date is required")
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return to_utc_day(datetime.fromisoformat(text))
        except ValueError:
            raise ValueError(f"invalid date: {value!r}")
    raise ValueError(f"invalid date: {value!r}")


def parse_flexible_date(value: str) -> date:
    """解析 CSV 中的日期，支持 MM/DD/YYYY 与 ISO 格式"""
    text = (value or "").strip()
    for fmt in ("%m/%d/%Y", "%Y-%m-%d", "%m-%d-%Y"):
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return to_utc_day(text)


def validate_month(month: str) -> str:
    """校验 YYYY-MM 格式"""
    if not month or not _MONTH_RE.match(month):
        raise ValueError(f"Invalid month format, expected YYYY-MM: {month!r}")
    return month


def month_bounds(month: str) -> Tuple[date, date]:
    """
    返回月份的首日与末日（闭区间）

    示例:
        >>> month_bounds("2025-02")
        (datetime.date(2025, 2, 1), datetime.date(2025, 2, 28))
    """
    validate_month(month)
    year, mon = int(month[:4]), int(month[5:7])
    last_day = calendar.monthrange(year, mon)[1]
    return date(year, mon, 1), date(year, mon, last_day)


def month_key(value: date) -> str:
    return value.strftime("%Y-%m")


def optional_str(value: Any) -> Optional[str]:
    """CSV 单元格清洗：空白或 NaN 视为 None"""
    if value is None:
        return None
    text = str(value).strip()
    if not text or text.lower() == "nan":
        return None
    return text
