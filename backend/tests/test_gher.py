"""
Gher 记账测试：标签校验、仪表盘统计、合伙人资本、发票序号、CSV 导入
"""
import datetime as dt
from decimal import Decimal

import pytest

from advantix.exceptions import ConflictError, NotFoundError, ValidationError
from advantix.models.gher import GherAuditLog, GherEntry, GherInvoice, GherInvoiceCounter
from advantix.services import export_service, gher_service


@pytest.fixture
def tags(db):
    return {
        "sales": gher_service.create_tag(db, {"name": "Fish Sales", "type": "income"}),
        "feed": gher_service.create_tag(db, {"name": "Feed", "type": "expense"}),
        "labour": gher_service.create_tag(db, {"name": "Labour", "type": "expense"}),
    }


@pytest.fixture
def partner(db):
    return gher_service.create_partner(db, {"name": "Karim", "phone": "01711"})


def _entry(db, entry_type, amount, day, tag=None, partner=None, details="entry"):
    return gher_service.create_entry(db, {
        "date": day,
        "type": entry_type,
        "amount": amount,
        "details": details,
        "tag_id": tag.id if tag else None,
        "partner_id": partner.id if partner else None,
    })


class TestTags:

    def test_duplicate_name_and_type_conflicts(self, db, tags):
        with pytest.raises(ConflictError):
            gher_service.create_tag(db, {"name": "Feed", "type": "expense"})
        # 同名不同类型允许
        assert gher_service.create_tag(db, {"name": "Feed", "type": "income"}).type == "income"

    def test_entry_rejects_mismatched_tag_type(self, db, tags):
        with pytest.raises(ValidationError) as exc:
            _entry(db, "income", 10, dt.date(2025, 1, 1), tag=tags["feed"])
        assert "Cannot use expense tag 'Feed' for income entry" in exc.value.message
        assert db.query(GherEntry).count() == 0

    def test_entry_rejects_unknown_tag_and_partner(self, db):
        with pytest.raises(ValidationError):
            gher_service.create_entry(db, {
                "date": dt.date(2025, 1, 1), "type": "income", "amount": 1, "details": "x", "tag_id": "nope",
            })
        with pytest.raises(ValidationError):
            gher_service.create_entry(db, {
                "date": dt.date(2025, 1, 1), "type": "income", "amount": 1, "details": "x", "partner_id": "nope",
            })

    def test_tag_in_use_cannot_change_type(self, db, tags):
        _entry(db, "expense", 10, dt.date(2025, 1, 1), tag=tags["feed"])
        with pytest.raises(ValidationError):
            gher_service.update_tag(db, tags["feed"].id, {"type": "income"})
        # 未使用的标签可以改类型
        assert gher_service.update_tag(db, tags["labour"].id, {"type": "income"}).type == "income"

    def test_delete_tag_untags_entries(self, db, tags):
        entry = _entry(db, "expense", 10, dt.date(2025, 1, 1), tag=tags["feed"])
        gher_service.delete_tag(db, tags["feed"].id)
        db.expire_all()
        assert db.get(GherEntry, entry.id).tag_id is None


class TestDashboardStats:

    def test_aggregation(self, db, tags):
        day = dt.date(2025, 1, 10)
        _entry(db, "income", 100, day, tag=tags["sales"])
        _entry(db, "expense", 40, day, tag=tags["feed"])
        _entry(db, "expense", 10, day)

        stats = gher_service.dashboard_stats(db)
        assert stats["total_income"] == Decimal("100.00")
        assert stats["total_expense"] == Decimal("50.00")
        assert stats["net_balance"] == Decimal("50.00")

        expense = stats["expense_by_tag"]
        assert [(row["tag_name"], row["percentage"]) for row in expense] == [
            ("Feed", Decimal("80.00")),
            ("Untagged", Decimal("20.00")),
        ]
        assert expense[1]["tag_id"] is None
        assert sum(row["percentage"] for row in expense) == Decimal("100.00")

    def test_empty_is_zero(self, db):
        stats = gher_service.dashboard_stats(db)
        assert stats["total_income"] == Decimal("0.00")
        assert stats["net_balance"] == Decimal("0.00")
        assert stats["income_by_tag"] == []

    def test_filters(self, db, tags, partner):
        _entry(db, "income", 100, dt.date(2025, 1, 10), tag=tags["sales"], partner=partner)
        _entry(db, "income", 50, dt.date(2025, 2, 10), tag=tags["sales"])

        january = gher_service.dashboard_stats(db, start_date=dt.date(2025, 1, 1), end_date=dt.date(2025, 1, 31))
        assert january["total_income"] == Decimal("100.00")

        by_partner = gher_service.dashboard_stats(db, partner_id=partner.id)
        assert by_partner["total_income"] == Decimal("100.00")

    def test_dashboard_api(self, client, admin_headers, db, tags):
        _entry(db, "income", 100, dt.date(2025, 1, 10), tag=tags["sales"])
        response = client.get(
            "/api/gher/dashboard-stats", params={"startDate": "2025-01-01"}, headers=admin_headers
        )
        assert response.status_code == 200
        body = response.json()
        assert Decimal(body["totalIncome"]) == Decimal("100")
        assert body["incomeByTag"][0]["tagName"] == "Fish Sales"


class TestPartnerCapital:

    def _txn(self, db, partner, txn_type, amount):
        return gher_service.create_capital_transaction(db, {
            "partner_id": partner.id, "date": dt.date(2025, 1, 5), "type": txn_type, "amount": amount,
        })

    def test_outstanding(self, db, partner):
        self._txn(db, partner, "contribution", 500)
        self._txn(db, partner, "return", 200)
        self._txn(db, partner, "withdrawal", 100)

        capital = gher_service.partner_capital(db, partner.id)
        assert capital["invested"] == Decimal("500.00")
        assert capital["returned"] == Decimal("200.00")
        assert capital["withdrawn"] == Decimal("100.00")
        assert capital["outstanding"] == Decimal("300.00")
        assert capital["current_balance"] == Decimal("200.00")

    def test_share_percentage(self, db, partner):
        other = gher_service.create_partner(db, {"name": "Salam"})
        self._txn(db, partner, "contribution", 300)
        self._txn(db, other, "contribution", 100)

        shares = {row["partner_name"]: row["share_percentage"] for row in gher_service.partners_summary(db)}
        assert shares == {"Karim": Decimal("75.00"), "Salam": Decimal("25.00")}

    def test_no_transactions_is_zero(self, db, partner):
        summary = gher_service.partners_summary(db)
        assert summary[0]["share_percentage"] == Decimal("0.00")
        assert summary[0]["outstanding"] == Decimal("0.00")

    def test_unknown_partner_rejected(self, db):
        with pytest.raises(ValidationError):
            gher_service.create_capital_transaction(db, {
                "partner_id": "nope", "date": dt.date(2025, 1, 5), "type": "contribution", "amount": 1,
            })

    def test_delete_partner_cascades_transactions(self, db, partner):
        self._txn(db, partner, "contribution", 500)
        gher_service.delete_partner(db, partner.id)
        assert gher_service.list_capital_transactions(db) == []

    def test_delete_partner_audits_cascaded_transactions(self, db, partner):
        first = self._txn(db, partner, "contribution", 500)
        second = self._txn(db, partner, "withdrawal", 100)
        gher_service.delete_partner(db, partner.id)

        deleted = db.query(GherAuditLog).filter(GherAuditLog.action_type == "deleted").all()
        by_type = {}
        for log in deleted:
            by_type.setdefault(log.entity_type, []).append(log)
        assert sorted(log.entity_id for log in by_type["capital_transaction"]) == sorted([first.id, second.id])
        assert by_type["partner"][0].extra_metadata == {"capital_transactions_deleted": 2}


class TestInvoices:

    def test_sequence_is_gapless_per_month(self, db, tags):
        _entry(db, "income", 100, dt.date(2025, 3, 3), tag=tags["sales"])
        numbers = [gher_service.generate_invoice(db, "2025-03").invoice_number for _ in range(3)]
        assert numbers == ["INV-202503-001", "INV-202503-002", "INV-202503-003"]

        # 其他月份独立计数
        assert gher_service.generate_invoice(db, "2025-04").invoice_number == "INV-202504-001"

    def test_sequence_not_reused_after_delete(self, db):
        first = gher_service.generate_invoice(db, "2025-03")
        second = gher_service.generate_invoice(db, "2025-03")
        gher_service.delete_invoice(db, second.id)

        third = gher_service.generate_invoice(db, "2025-03")
        assert first.sequence == 1
        assert third.sequence == 3
        db.expire_all()
        assert db.get(GherInvoiceCounter, "2025-03").last_sequence == 3

    def test_snapshot_contents(self, db, tags, partner):
        _entry(db, "income", 300, dt.date(2025, 3, 3), tag=tags["sales"])
        _entry(db, "expense", 80, dt.date(2025, 3, 4), tag=tags["feed"])
        _entry(db, "expense", 20, dt.date(2025, 3, 5))
        _entry(db, "income", 999, dt.date(2025, 4, 1), tag=tags["sales"])  # 不在本月
        gher_service.create_capital_transaction(db, {
            "partner_id": partner.id, "date": dt.date(2025, 3, 1), "type": "contribution", "amount": 1000,
        })
        gher_service.create_capital_transaction(db, {
            "partner_id": partner.id, "date": dt.date(2025, 3, 20), "type": "return", "amount": 150,
        })

        invoice = gher_service.generate_invoice(db, "2025-03", notes="March close")
        assert invoice.total_income == Decimal("300.00")
        assert invoice.total_expense == Decimal("100.00")
        assert invoice.net_balance == Decimal("200.00")

        snapshot = invoice.snapshot
        assert snapshot["month"] == "2025-03"
        assert [t["tagName"] for t in snapshot["topExpenseTags"]] == ["Feed", "Untagged"]
        assert len(snapshot["incomeEntries"]) == 1
        assert len(snapshot["expenseEntries"]) == 2
        movement = snapshot["partnerMovements"][0]
        assert movement["partnerName"] == "Karim"
        assert Decimal(movement["contribution"]) == Decimal("1000")
        assert Decimal(movement["return"]) == Decimal("150")
        assert Decimal(movement["net"]) == Decimal("850")

    def test_snapshot_is_frozen(self, db, tags):
        entry = _entry(db, "income", 100, dt.date(2025, 3, 3), tag=tags["sales"])
        invoice = gher_service.generate_invoice(db, "2025-03")
        gher_service.update_entry(db, entry.id, {"amount": Decimal("500")})

        db.expire_all()
        stored = db.get(GherInvoice, invoice.id)
        assert stored.total_income == Decimal("100.00")
        assert Decimal(stored.snapshot["totalIncome"]) == Decimal("100")

    def test_invalid_month(self, db):
        with pytest.raises(ValidationError):
            gher_service.generate_invoice(db, "2025-13")

    def test_delete_missing_invoice(self, db):
        with pytest.raises(NotFoundError):
            gher_service.delete_invoice(db, "missing")

    def test_invoice_api_and_downloads(self, client, admin_headers, db, tags):
        _entry(db, "income", 100, dt.date(2025, 3, 3), tag=tags["sales"])

        preview = client.get("/api/gher/invoices/preview", params={"month": "2025-03"}, headers=admin_headers)
        assert preview.status_code == 200
        assert Decimal(preview.json()["totalIncome"]) == Decimal("100")

        created = client.post("/api/gher/invoices", json={"month": "2025-03"}, headers=admin_headers)
        assert created.status_code == 201
        invoice = created.json()
        assert invoice["invoiceNumber"] == "INV-202503-001"

        csv_response = client.get(f"/api/gher/invoices/{invoice['id']}/csv", headers=admin_headers)
        assert csv_response.status_code == 200
        assert "INV-202503-001" in csv_response.text
        assert "Fish Sales" in csv_response.text

        xlsx_response = client.get(f"/api/gher/invoices/{invoice['id']}/xlsx", headers=admin_headers)
        assert xlsx_response.status_code == 200
        assert xlsx_response.content[:2] == b"PK"


class TestEntryApi:

    def test_round_trip(self, client, admin_headers, tags):
        payload = {
            "date": "2025-01-15",
            "type": "expense",
            "amount": "12.50",
            "details": "Lime",
            "tagId": tags["feed"].id,
        }
        created = client.post("/api/gher/entries", json=payload, headers=admin_headers)
        assert created.status_code == 201

        fetched = client.get(f"/api/gher/entries/{created.json()['id']}", headers=admin_headers).json()
        assert fetched["tagId"] == tags["feed"].id
        assert Decimal(fetched["amount"]) == Decimal("12.5")
        assert fetched["type"] == "expense"
        assert fetched["date"] == "2025-01-15"

    def test_missing_entry_is_404(self, client, admin_headers):
        response = client.put("/api/gher/entries/missing", json={"details": "x"}, headers=admin_headers)
        assert response.status_code == 404
        assert response.json()["code"] == "NOT_FOUND"

    def test_delete_all_returns_count(self, client, admin_headers, db, tags):
        _entry(db, "income", 1, dt.date(2025, 1, 1))
        _entry(db, "income", 2, dt.date(2025, 1, 2))
        response = client.post("/api/gher/entries/delete-all", headers=admin_headers)
        assert response.json()["count"] == 2
        assert db.query(GherEntry).count() == 0


class TestNullUpdates:
    """必填字段传 null 时返回 400，记录保持不变"""

    def test_entry_amount_null(self, client, admin_headers, db, tags):
        entry = _entry(db, "income", 10, dt.date(2025, 1, 1), tag=tags["sales"])
        response = client.put(f"/api/gher/entries/{entry.id}", json={"amount": None}, headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

        db.expire_all()
        assert db.get(GherEntry, entry.id).amount == Decimal("10.00")
        assert db.query(GherAuditLog).filter(GherAuditLog.action_type == "updated").count() == 0

    def test_partner_name_null(self, client, admin_headers, db, partner):
        response = client.put(f"/api/gher/partners/{partner.id}", json={"name": None}, headers=admin_headers)
        assert response.status_code == 400
        db.expire_all()
        assert gher_service.list_partners(db)[0].name == "Karim"

    def test_capital_amount_null(self, db, partner):
        txn = gher_service.create_capital_transaction(db, {
            "partner_id": partner.id, "date": dt.date(2025, 1, 5), "type": "contribution", "amount": 5,
        })
        with pytest.raises(ValidationError):
            gher_service.update_capital_transaction(db, txn.id, {"amount": None})

    def test_optional_field_can_be_cleared(self, db, tags):
        entry = _entry(db, "income", 10, dt.date(2025, 1, 1), tag=tags["sales"])
        updated = gher_service.update_entry(db, entry.id, {"tag_id": None})
        assert updated.tag_id is None


class TestCsvImport:

    def test_entries_partial_success(self, db, tags):
        content = (
            "Date,Type,Amount,Details,Tag,Partner\n"
            "2025-01-05,income,100,Catch,Fish Sales,\n"
            "01/06/2025,expense,40,Pellets,Feed,\n"
            "2025-01-07,expense,abc,Bad amount,Feed,\n"
            "2025-01-08,income,10,Wrong tag,Feed,\n"
            "2025-01-09,expense,5,Ghost partner,,Nobody\n"
        ).encode()
        result = gher_service.import_entries(db, export_service.read_csv_rows(content))
        assert result["imported"] == 2
        assert len(result["errors"]) == 3
        assert result["errors"][0].startswith("Row 4:")
        assert db.query(GherEntry).count() == 2

    def test_capital_import_and_export(self, db, partner):
        content = (
            "Partner,Date,Type,Amount (BDT),Notes\n"
            "Karim,03/01/2025,contribution,1000,Initial\n"
            "karim,2025-03-15,withdrawal,200,\n"
            "Unknown,03/01/2025,contribution,5,\n"
        ).encode()
        result = gher_service.import_capital_transactions(db, export_service.read_csv_rows(content))
        assert result["imported"] == 2
        assert result["errors"] == ["Row 4: Partner 'Unknown' not found"]

        rows = gher_service.export_capital_rows(db)
        assert rows[-1]["Date"] == "03/01/2025"
        text = export_service.rows_to_csv(rows, gher_service.CAPITAL_CSV_COLUMNS)
        assert text.splitlines()[0] == "Partner,Date,Type,Amount (BDT),Notes"

    def test_import_api(self, client, admin_headers, tags):
        files = {"file": ("entries.csv", b"Date,Type,Amount,Details,Tag\n2025-01-05,income,100,Catch,Fish Sales\n", "text/csv")}
        response = client.post("/api/gher/entries/import/csv", files=files, headers=admin_headers)
        assert response.status_code == 200
        assert response.json() == {"imported": 1, "errors": []}
