"""
工作日报测试：本人可见、管理员全量、导出
"""
from decimal import Decimal

from tests.conftest import auth_headers

REPORT = {"title": "Campaign setup", "description": "Built audiences", "hoursWorked": "7.5", "date": "2025-01-06"}


def _create(client, user, **overrides):
    response = client.post("/api/work-reports", json={**REPORT, **overrides}, headers=auth_headers(user))
    assert response.status_code == 201, response.text
    return response.json()


class TestOwnership:

    def test_user_sees_only_own_reports(self, client, make_user):
        alice, bob = make_user("user"), make_user("user")
        _create(client, alice)
        bob_report = _create(client, bob, title="Bob's")

        listed = client.get("/api/work-reports", headers=auth_headers(alice)).json()
        assert [r["userId"] for r in listed] == [alice.id]

        # userId 参数对非管理员无效
        listed = client.get("/api/work-reports", params={"userId": bob.id}, headers=auth_headers(alice)).json()
        assert [r["userId"] for r in listed] == [alice.id]

        # 他人的日报表现为不存在
        response = client.get(f"/api/work-reports/{bob_report['id']}", headers=auth_headers(alice))
        assert response.status_code == 404

    def test_user_cannot_file_for_someone_else(self, client, make_user):
        alice, bob = make_user("user"), make_user("user")
        report = _create(client, alice, userId=bob.id)
        assert report["userId"] == alice.id

    def test_user_cannot_edit_foreign_report(self, client, make_user):
        alice, bob = make_user("user"), make_user("user")
        report = _create(client, bob)
        response = client.put(
            f"/api/work-reports/{report['id']}", json={"title": "Mine now"}, headers=auth_headers(alice)
        )
        assert response.status_code == 404

    def test_user_role_cannot_delete(self, client, make_user):
        alice = make_user("user")
        report = _create(client, alice)
        response = client.delete(f"/api/work-reports/{report['id']}", headers=auth_headers(alice))
        assert response.status_code == 403

    def test_hours_validation(self, client, make_user):
        alice = make_user("user")
        response = client.post(
            "/api/work-reports", json={**REPORT, "hoursWorked": "0"}, headers=auth_headers(alice)
        )
        assert response.status_code == 422


class TestAdmin:

    def test_admin_sees_and_filters_all(self, client, make_user, admin_headers):
        alice, bob = make_user("user"), make_user("user")
        _create(client, alice)
        _create(client, bob)

        assert len(client.get("/api/work-reports", headers=admin_headers).json()) == 2
        only_bob = client.get("/api/work-reports", params={"userId": bob.id}, headers=admin_headers).json()
        assert [r["userId"] for r in only_bob] == [bob.id]

    def test_delete_all_is_admin_only(self, client, make_user, admin_headers):
        alice = make_user("user")
        _create(client, alice)
        _create(client, alice, date="2025-01-07")

        assert client.delete("/api/work-reports/all", headers=auth_headers(alice)).status_code == 403

        response = client.delete("/api/work-reports/all", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["deletedCount"] == 2
        assert client.get("/api/work-reports", headers=admin_headers).json() == []

    def test_export_csv(self, client, make_user, admin_headers):
        alice = make_user("user", name="Alice")
        report = _create(client, alice)
        assert Decimal(report["hoursWorked"]) == Decimal("7.50")

        response = client.get("/api/work-reports/export/csv", headers=admin_headers)
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        lines = response.text.splitlines()
        assert lines[0] == "Date,Title,Description,Hours Worked,Status,User,User ID"
        assert lines[1] == f"2025-01-06,Campaign setup,Built audiences,7.50,submitted,Alice,{alice.id}"
