"""
财务测试：汇率、收款换算、仪表盘、支出 CSV 导入、工资计算
"""
import datetime as dt
from decimal import Decimal

import pytest

from advantix.exceptions import ConflictError, ValidationError
from advantix.models.finance import EXCHANGE_RATE_KEY, FinanceExpense, FinancePayment, FinanceSetting
from advantix.models.work_report import WorkReport
from advantix.services import export_service, finance_service


@pytest.fixture
def project(db, sample_client):
    return finance_service.create_project(db, {
        "name": "Retainer",
        "client_id": sample_client.id,
        "start_date": dt.date(2025, 1, 1),
        "budget": Decimal("1000"),
    })


class TestExchangeRate:

    def test_lazy_default(self, db):
        db.query(FinanceSetting).delete()
        db.commit()

        assert finance_service.get_exchange_rate(db) == Decimal("110")
        # 首次读取后已持久化
        assert finance_service.get_setting(db, EXCHANGE_RATE_KEY).value == "110"

    def test_rate_must_be_positive(self, db):
        with pytest.raises(ValidationError):
            finance_service.upsert_setting(db, EXCHANGE_RATE_KEY, "0")
        with pytest.raises(ValidationError):
            finance_service.upsert_setting(db, EXCHANGE_RATE_KEY, "abc")
        assert finance_service.get_exchange_rate(db) == Decimal("110")

    def test_rate_api(self, client, admin_headers):
        assert Decimal(client.get("/api/finance/exchange-rate", headers=admin_headers).json()["rate"]) == Decimal("110")
        response = client.put("/api/finance/exchange-rate", json={"rate": "120.5"}, headers=admin_headers)
        assert response.status_code == 200
        assert Decimal(response.json()["rate"]) == Decimal("120.5")


class TestPayments:

    def test_converted_with_current_rate(self, db, project, sample_client):
        payment = finance_service.create_payment(db, {
            "client_id": sample_client.id,
            "project_id": project.id,
            "amount": Decimal("10.50"),
            "date": dt.date(2025, 1, 10),
        })
        assert payment.conversion_rate == Decimal("110.00")
        assert payment.converted_amount == Decimal("1155.00")

    def test_update_recomputes(self, db, project, sample_client):
        payment = finance_service.create_payment(db, {
            "client_id": sample_client.id,
            "project_id": project.id,
            "amount": Decimal("10"),
            "conversion_rate": Decimal("100"),
            "date": dt.date(2025, 1, 10),
        })
        updated = finance_service.update_payment(db, payment.id, {"amount": Decimal("20")})
        assert updated.converted_amount == Decimal("2000.00")

    def test_resave_keeps_converted_amount(self, db, project, sample_client):
        payment = finance_service.create_payment(db, {
            "client_id": sample_client.id,
            "project_id": project.id,
            "amount": Decimal("100"),
            "conversion_rate": Decimal("121.375"),
            "date": dt.date(2025, 1, 10),
        })
        assert payment.conversion_rate == Decimal("121.375")
        assert payment.converted_amount == Decimal("12137.50")

        updated = finance_service.update_payment(db, payment.id, {"amount": Decimal("100")})
        assert updated.conversion_rate == Decimal("121.375")
        assert updated.converted_amount == Decimal("12137.50")

    def test_null_amount_rejected(self, db, project, sample_client):
        payment = finance_service.create_payment(db, {
            "client_id": sample_client.id, "project_id": project.id, "amount": 10, "date": dt.date(2025, 1, 1),
        })
        with pytest.raises(ValidationError):
            finance_service.update_payment(db, payment.id, {"amount": None})
        db.expire_all()
        assert db.get(FinancePayment, payment.id).amount == Decimal("10.00")

    def test_null_amount_api(self, client, admin_headers, db, project, sample_client):
        payment = finance_service.create_payment(db, {
            "client_id": sample_client.id, "project_id": project.id, "amount": 10, "date": dt.date(2025, 1, 1),
        })
        response = client.put(f"/api/finance/payments/{payment.id}", json={"amount": None}, headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

    def test_missing_client_is_validation_error(self, db, project):
        with pytest.raises(ValidationError) as exc:
            finance_service.create_payment(db, {"project_id": project.id, "amount": 1, "date": dt.date(2025, 1, 1)})
        assert "client_id" in exc.value.message

    def test_project_with_payments_cannot_be_deleted(self, db, project, sample_client):
        finance_service.create_payment(db, {
            "client_id": sample_client.id, "project_id": project.id, "amount": 1, "date": dt.date(2025, 1, 1),
        })
        with pytest.raises(ConflictError):
            finance_service.delete_project(db, project.id)


class TestDashboard:

    def test_totals(self, db, project, sample_client):
        finance_service.create_payment(db, {
            "client_id": sample_client.id,
            "project_id": project.id,
            "amount": Decimal("100"),
            "date": dt.date(2025, 1, 10),
        })
        finance_service.create_expense(db, {
            "type": "expense", "amount": Decimal("1100"), "currency": "BDT", "date": dt.date(2025, 1, 12),
        })
        finance_service.create_expense(db, {
            "type": "expense", "amount": Decimal("10"), "currency": "USD", "date": dt.date(2025, 2, 1),
        })
        finance_service.create_expense(db, {
            "type": "salary", "amount": Decimal("2200"), "currency": "BDT", "date": dt.date(2025, 2, 1),
        })

        dashboard = finance_service.finance_dashboard(db)
        summary = dashboard["summary"]
        assert summary["total_payments_usd"] == Decimal("100.00")
        assert summary["total_payments_bdt"] == Decimal("11000.00")
        assert summary["expenses_only_bdt"] == Decimal("2200.00")
        assert summary["total_salaries_bdt"] == Decimal("2200.00")
        assert summary["total_expenses_bdt"] == Decimal("4400.00")
        assert summary["total_expenses_usd"] == Decimal("40.00")
        assert summary["available_balance_usd"] == Decimal("60.00")
        assert summary["net_balance_bdt"] == Decimal("6600.00")

        charts = dashboard["charts"]
        assert charts["payments_by_month"] == {"2025-01": Decimal("100.00")}
        assert charts["expenses_by_month"]["2025-02"] == {
            "expenses": Decimal("1100.00"), "salaries": Decimal("2200.00"),
        }
        assert dashboard["counts"]["total_expenses"] == 3

    def test_empty_dashboard_api(self, client, admin_headers):
        response = client.get("/api/finance/dashboard", headers=admin_headers)
        assert response.status_code == 200
        summary = response.json()["summary"]
        assert Decimal(summary["totalPaymentsUSD"]) == Decimal("0")
        assert Decimal(summary["exchangeRate"]) == Decimal("110")

    def test_delete_all_expenses_api(self, client, admin_headers, db):
        for amount in (1, 2):
            finance_service.create_expense(db, {
                "type": "expense", "amount": amount, "currency": "BDT", "date": dt.date(2025, 1, 1),
            })
        response = client.post("/api/finance/expenses/delete-all", headers=admin_headers)
        assert response.json()["count"] == 2


class TestExpenseImport:

    CSV = (
        "type,amount,currency,date,projectId,notes\n"
        "expense,500,BDT,2025-01-05,,Office rent\n"
        "salary,20,usd,01/31/2025,,\n"
        "bonus,10,BDT,2025-01-05,,\n"
        "expense,-5,BDT,2025-01-05,,\n"
        "expense,5,EUR,2025-01-05,,\n"
        "expense,5,BDT,2025-01-05,missing-project,\n"
    ).encode()

    def test_preview_does_not_write(self, db):
        preview = finance_service.preview_expense_import(db, export_service.read_csv_rows(self.CSV))
        assert preview["valid_count"] == 2
        assert preview["error_count"] == 4
        assert preview["errors"][0].startswith("Row 4: Invalid type 'bonus'")
        assert preview["valid_records"][1]["currency"] == "USD"
        assert db.query(FinanceExpense).count() == 0

    def test_preview_then_confirm_api(self, client, admin_headers, db):
        files = {"file": ("expenses.csv", self.CSV, "text/csv")}
        preview = client.post("/api/finance/expenses/import-csv/preview", files=files, headers=admin_headers)
        assert preview.status_code == 200
        records = preview.json()["validRecords"]

        confirm = client.post(
            "/api/finance/expenses/import-csv/confirm", json={"validRecords": records}, headers=admin_headers
        )
        assert confirm.status_code == 200
        assert confirm.json()["imported"] == 2
        assert db.query(FinanceExpense).count() == 2

    def test_export_columns(self, client, admin_headers, db):
        finance_service.create_expense(db, {
            "type": "expense", "amount": 5, "currency": "BDT", "date": dt.date(2025, 1, 1), "notes": "Tea",
        })
        response = client.get("/api/finance/expenses/export/csv", headers=admin_headers)
        lines = response.text.splitlines()
        assert lines[0] == "Type,Project,Amount,Currency,Date,Notes"
        assert lines[1] == "expense,,5.00,BDT,2025-01-01,Tea"


class TestSalaries:

    def test_compute_salary(self):
        result = finance_service.compute_salary(
            Decimal("16000"), 160, Decimal("150"),
            festival_bonus=Decimal("1000"), performance_bonus=Decimal("500"),
        )
        assert result["hourly_rate"] == Decimal("100.00")
        assert result["base_payment"] == Decimal("15000.00")
        assert result["total_bonus"] == Decimal("1500.00")
        assert result["gross_payment"] == Decimal("16500.00")
        assert result["final_payment"] == Decimal("16500.00")

    def _report(self, db, user, day, hours, status="submitted"):
        db.add(WorkReport(
            user_id=user.id, title="Work", description="Did things",
            hours_worked=Decimal(hours), date=day, status=status,
        ))
        db.commit()

    def _payload(self, user, **overrides):
        payload = {
            "employee_id": user.id,
            "employee_name": user.display_name,
            "month": "2025-01",
            "basic_salary": Decimal("16000"),
            "contractual_hours": 160,
            "actual_working_hours": Decimal("80"),
        }
        payload.update(overrides)
        return payload

    def test_preview_sums_reports(self, db, make_user):
        user = make_user("user")
        self._report(db, user, dt.date(2025, 1, 2), "8")
        self._report(db, user, dt.date(2025, 1, 3), "7.5")
        self._report(db, user, dt.date(2025, 1, 4), "5", status="draft")
        self._report(db, user, dt.date(2025, 2, 1), "8")

        preview = finance_service.salary_preview(db, user.id, "2025-01")
        assert preview["exists"] is False
        assert preview["work_reports"]["count"] == 2
        assert preview["work_reports"]["total_hours"] == Decimal("15.50")
        assert preview["preview"]["contractual_hours"] == 160
        assert preview["preview"]["has_previous_salary"] is False

    def test_generate_and_duplicate(self, db, make_user):
        user = make_user("user")
        self._report(db, user, dt.date(2025, 1, 2), "8")

        salary = finance_service.generate_salary(db, self._payload(user))
        assert salary.final_payment == Decimal("8000.00")
        with pytest.raises(ConflictError):
            finance_service.generate_salary(db, self._payload(user))

        preview = finance_service.salary_preview(db, user.id, "2025-01")
        assert preview["exists"] is True
        assert preview["existing_salary"].id == salary.id

    def test_generate_requires_reports(self, db, make_user):
        user = make_user("user")
        with pytest.raises(ValidationError):
            finance_service.generate_salary(db, self._payload(user))

    def test_update_recomputes(self, db, make_user):
        user = make_user("user")
        self._report(db, user, dt.date(2025, 1, 2), "8")
        salary = finance_service.generate_salary(db, self._payload(user))

        updated = finance_service.update_salary(db, salary.id, {"other_bonus": Decimal("250")})
        assert updated.total_bonus == Decimal("250.00")
        assert updated.final_payment == Decimal("8250.00")

    def test_salary_routes_require_permission(self, client, make_user):
        from tests.conftest import auth_headers

        manager = make_user("manager")
        response = client.get("/api/salaries", headers=auth_headers(manager))
        assert response.status_code == 403

    def test_stats_api(self, client, admin_headers, db, make_user):
        user = make_user("user")
        self._report(db, user, dt.date(2025, 1, 2), "8")
        finance_service.generate_salary(db, self._payload(user, payment_status="paid"))

        stats = client.get("/api/salaries/stats", headers=admin_headers).json()
        assert stats["totalSalaries"] == 1
        assert stats["paidSalaries"] == 1
        assert Decimal(stats["paymentRate"]) == Decimal("100")
