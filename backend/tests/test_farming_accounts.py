"""
养号账户测试：敏感字段只对管理员开放
"""
from tests.conftest import auth_headers

ACCOUNT = {
    "socialMedia": "facebook",
    "idName": "Nadia Rahman",
    "email": "nadia@mail.test",
    "password": "s3cret!",
    "twoFaSecret": "JBSWY3DPEHPK3PXP",
    "status": "farming",
}


def _create(client, headers, **overrides):
    response = client.post("/api/farming-accounts", json={**ACCOUNT, **overrides}, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


class TestSecrets:

    def test_secrets_hidden_by_default(self, client, make_user):
        headers = auth_headers(make_user("user"))
        created = _create(client, headers)
        assert "password" not in created

        fetched = client.get(f"/api/farming-accounts/{created['id']}", headers=headers).json()
        assert fetched["email"] == "nadia@mail.test"
        assert "password" not in fetched
        assert "twoFaSecret" not in fetched

    def test_non_admin_cannot_request_secrets(self, client, make_user):
        headers = auth_headers(make_user("manager"))
        created = _create(client, headers)

        response = client.get(
            f"/api/farming-accounts/{created['id']}", params={"includeSecrets": True}, headers=headers
        )
        assert response.status_code == 403
        response = client.get("/api/farming-accounts/export/csv", params={"includeSecrets": True}, headers=headers)
        assert response.status_code == 403

    def test_admin_reads_secrets(self, client, admin_headers):
        created = _create(client, admin_headers)
        fetched = client.get(
            f"/api/farming-accounts/{created['id']}", params={"includeSecrets": True}, headers=admin_headers
        ).json()
        assert fetched["password"] == "s3cret!"
        assert fetched["twoFaSecret"] == "JBSWY3DPEHPK3PXP"

    def test_export_columns(self, client, admin_headers):
        _create(client, admin_headers)
        public = client.get("/api/farming-accounts/export/csv", headers=admin_headers).text.splitlines()
        assert public[0] == "id,comment,socialMedia,vaId,status,idName,email,createdAt"
        assert "s3cret!" not in public[1]

        full = client.get(
            "/api/farming-accounts/export/csv", params={"includeSecrets": True}, headers=admin_headers
        ).text
        assert "twoFaSecret" in full.splitlines()[0]
        assert "s3cret!" in full


class TestFarmingCrud:

    def test_filters(self, client, admin_headers):
        _create(client, admin_headers)
        _create(client, admin_headers, socialMedia="tiktok", email="t@mail.test", idName="Tok", status="new")

        tiktok = client.get("/api/farming-accounts", params={"socialMedia": "tiktok"}, headers=admin_headers).json()
        assert [a["idName"] for a in tiktok] == ["Tok"]
        farming = client.get("/api/farming-accounts", params={"status": "farming"}, headers=admin_headers).json()
        assert [a["idName"] for a in farming] == ["Nadia Rahman"]
        found = client.get("/api/farming-accounts", params={"search": "nadia"}, headers=admin_headers).json()
        assert len(found) == 1

    def test_invalid_social_media(self, client, admin_headers):
        response = client.post(
            "/api/farming-accounts", json={**ACCOUNT, "socialMedia": "myspace"}, headers=admin_headers
        )
        assert response.status_code == 422

    def test_unknown_va_rejected(self, client, admin_headers):
        response = client.post("/api/farming-accounts", json={**ACCOUNT, "vaId": "missing"}, headers=admin_headers)
        assert response.status_code == 400

    def test_import_with_header_aliases(self, client, admin_headers):
        content = (
            "Social Media,ID Name,Email,Password,2FA,Status\n"
            "Facebook,Ayesha,ayesha@mail.test,pw1,ABC,Active\n"
            "friendster,Bad,bad@mail.test,pw2,,\n"
            "tiktok,NoPass,np@mail.test,,,\n"
        ).encode()
        response = client.post(
            "/api/farming-accounts/import/csv",
            files={"file": ("accounts.csv", content, "text/csv")},
            headers=admin_headers,
        )
        assert response.status_code == 200
        body = response.json()
        assert body["success"] == 1
        assert len(body["errors"]) == 2
        assert body["errors"][0].startswith("Failed to import bad@mail.test")

        accounts = client.get("/api/farming-accounts", headers=admin_headers).json()
        assert accounts[0]["status"] == "active"
        assert accounts[0]["socialMedia"] == "facebook"

    def test_delete(self, client, admin_headers):
        created = _create(client, admin_headers)
        assert client.delete(f"/api/farming-accounts/{created['id']}", headers=admin_headers).status_code == 200
        assert client.get(f"/api/farming-accounts/{created['id']}", headers=admin_headers).status_code == 404
