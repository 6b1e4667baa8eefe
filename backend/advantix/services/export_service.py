"""
导入导出服务

- read_csv_rows: 上传的 CSV 读为逐行字典（pandas，全部按字符串读取）
- rows_to_csv / csv_response: 行数据按固定列顺序写出 CSV
- invoice_to_csv / invoice_to_xlsx: 已保存的发票快照导出（openpyxl 生成 .xlsx）
"""
import io
import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Sequence

import pandas as pd
from fastapi.responses import StreamingResponse
from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter

from advantix.exceptions import ValidationError

logger = logging.getLogger(__name__)

HEADER_FILL = PatternFill(start_color="D9E1F2", end_color="D9E1F2", fill_type="solid")
HEADER_FONT = Font(bold=True)


def read_csv_rows(content: bytes) -> List[Dict[str, str]]:
    """
    解析 CSV 内容

    参数:
        content: 上传文件的原始字节（UTF-8，可带 BOM）

    返回:
        每行一个字典，表头去除首尾空白，空单元格为 ""
    """
    if not content or not content.strip():
        raise ValidationError("CSV file is empty")
    try:
        df = pd.read_csv(
            io.BytesIO(content),
            dtype=str,
            keep_default_na=False,
            encoding="utf-8-sig",
            skipinitialspace=True,
        )
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
        raise ValidationError(f"Invalid CSV file: {e}")

    df.columns = [str(col).strip() for col in df.columns]
    rows = df.to_dict(orient="records")
    logger.info(f"CSV 解析完成: {len(rows)} 行", extra={"columns": list(df.columns)})
    return rows


def pick(row: Dict[str, Any], *aliases: str) -> str:
    """按别名顺序取第一个非空单元格"""
    for alias in aliases:
        value = row.get(alias)
        if value is not None and str(value).strip():
            return str(value).strip()
    return ""


def rows_to_csv(rows: Iterable[Dict[str, Any]], columns: Sequence[str]) -> str:
    """按给定列顺序输出 CSV 文本（无数据时仅输出表头）"""
    df = pd.DataFrame(list(rows), columns=list(columns))
    return df.to_csv(index=False)


def csv_response(text: str, filename: str) -> StreamingResponse:
    return StreamingResponse(
        iter([text]),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


def xlsx_response(data: bytes, filename: str) -> StreamingResponse:
    return StreamingResponse(
        iter([data]),
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


def dated_filename(prefix: str, ext: str = "csv") -> str:
    return f"{prefix}_{datetime.now().strftime('%Y%m%d')}.{ext}"


# ========== 发票 ==========

def _invoice_sections(invoice_number: str, snapshot: Dict[str, Any]) -> List[List[Any]]:
    """把快照展开为表格行（CSV 与 XLSX 共用）"""
    rows: List[List[Any]] = [
        ["Invoice", invoice_number],
        ["Month", snapshot.get("month", "")],
        [],
        ["Total Income", snapshot.get("totalIncome", "0")],
        ["Total Expense", snapshot.get("totalExpense", "0")],
        ["Net Balance", snapshot.get("netBalance", "0")],
        [],
        ["Top Income Tags", "Amount", "Percentage"],
    ]
    rows += [[t["tagName"], t["amount"], t["percentage"]] for t in snapshot.get("topIncomeTags", [])]
    rows += [[], ["Top Expense Tags", "Amount", "Percentage"]]
    rows += [[t["tagName"], t["amount"], t["percentage"]] for t in snapshot.get("topExpenseTags", [])]
    rows += [[], ["Partner", "Contribution", "Return", "Withdrawn", "Net"]]
    rows += [
        [m["partnerName"], m["contribution"], m["return"], m["withdrawn"], m["net"]]
        for m in snapshot.get("partnerMovements", [])
    ]
    for title, key in (("Income Entries", "incomeEntries"), ("Expense Entries", "expenseEntries")):
        rows += [[], [title], ["Date", "Amount", "Details", "Tag", "Partner"]]
        rows += [
            [e["date"], e["amount"], e["details"], e["tagName"], e.get("partnerName") or ""]
            for e in snapshot.get(key, [])
        ]
    return rows


def invoice_to_csv(invoice_number: str, snapshot: Dict[str, Any]) -> str:
    rows = _invoice_sections(invoice_number, snapshot)
    width = max(len(r) for r in rows)
    padded = [r + [""] * (width - len(r)) for r in rows]
    return pd.DataFrame(padded).to_csv(index=False, header=False)


def invoice_to_xlsx(invoice_number: str, snapshot: Dict[str, Any]) -> bytes:
    """生成单工作表的发票 .xlsx，分节标题加粗"""
    wb = Workbook()
    ws = wb.active
    ws.title = invoice_number[:31]

    for row in _invoice_sections(invoice_number, snapshot):
        ws.append(row)
        # 分节表头：首列为文本且后续单元格为列名
        if row and len(row) > 1 and all(isinstance(c, str) and not _is_number(c) for c in row):
            for cell in ws[ws.max_row]:
                cell.font = HEADER_FONT
                cell.fill = HEADER_FILL
        elif len(row) == 1:
            ws.cell(row=ws.max_row, column=1).font = HEADER_FONT

    for idx in range(1, ws.max_column + 1):
        ws.column_dimensions[get_column_letter(idx)].width = 22 if idx > 1 else 30
    for row in ws.iter_rows():
        for cell in row:
            cell.alignment = Alignment(vertical="center")

    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def _is_number(text: str) -> bool:
    try:
        float(text)
        return True
    except ValueError:
        return False
