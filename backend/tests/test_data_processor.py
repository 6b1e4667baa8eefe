"""
测试金额与日期工具函数
"""
import datetime as dt
from decimal import Decimal

import pytest

from advantix.utils.data_processor import (
    month_bounds,
    optional_str,
    parse_flexible_date,
    percentage,
    quantize_money,
    to_decimal,
    to_utc_day,
)


class TestMoney:
    """测试金额函数"""

    def test_to_decimal_from_string(self):
        assert to_decimal("1,250.50") == Decimal("1250.50")

    def test_to_decimal_from_float_has_no_binary_noise(self):
        # 0.1 直接转 Decimal 会带出二进制误差
        assert to_decimal(0.1) == Decimal("0.1")

    @pytest.mark.parametrize("value", [None, "", "abc", "NaN", "Infinity"])
    def test_to_decimal_invalid(self, value):
        with pytest.raises(ValueError):
            to_decimal(value)

    def test_quantize_half_up(self):
        assert quantize_money(Decimal("2.345")) == Decimal("2.35")
        assert quantize_money(Decimal("2.344")) == Decimal("2.34")

    def test_percentage(self):
        # 40 / 50 = 80%
        assert percentage(Decimal("40"), Decimal("50")) == Decimal("80.00")
        assert percentage(Decimal("1"), Decimal("3")) == Decimal("33.33")

    def test_percentage_zero_total(self):
        assert percentage(Decimal("10"), Decimal("0")) == Decimal("0.00")


class TestDates:
    """测试日期与月份函数"""

    def test_aware_datetime_converted_to_utc(self):
        value = dt.datetime(2025, 3, 1, 1, 30, tzinfo=dt.timezone(dt.timedelta(hours=6)))
        assert to_utc_day(value) == dt.date(2025, 2, 28)

    def test_naive_datetime_treated_as_utc(self):
        assert to_utc_day(dt.datetime(2025, 3, 1, 23, 59)) == dt.date(2025, 3, 1)

    def test_iso_strings(self):
        assert to_utc_day("2025-03-01") == dt.date(2025, 3, 1)
        assert to_utc_day("2025-03-01T23:30:00Z") == dt.date(2025, 3, 1)
        assert to_utc_day("2025-03-02T02:00:00+05:00") == dt.date(2025, 3, 1)

    @pytest.mark.parametrize("value", ["", "yesterday", 20250301])
    def test_invalid_dates(self, value):
        with pytest.raises(ValueError):
            to_utc_day(value)

    def test_flexible_date_formats(self):
        assert parse_flexible_date("03/15/2025") == dt.date(2025, 3, 15)
        assert parse_flexible_date("2025-03-15") == dt.date(2025, 3, 15)
        assert parse_flexible_date("03-15-2025") == dt.date(2025, 3, 15)

    def test_month_bounds(self):
        assert month_bounds("2024-02") == (dt.date(2024, 2, 1), dt.date(2024, 2, 29))
        assert month_bounds("2025-12") == (dt.date(2025, 12, 1), dt.date(2025, 12, 31))

    @pytest.mark.parametrize("month", ["2025-13", "2025-1", "202501", ""])
    def test_month_bounds_invalid(self, month):
        with pytest.raises(ValueError):
            month_bounds(month)


def test_optional_str():
    assert optional_str("  x ") == "x"
    assert optional_str("nan") is None
    assert optional_str("") is None
    assert optional_str(None) is None
