"""
认证测试：登录、刷新令牌、停用账号
"""
from advantix.middleware.auth import create_refresh_token, get_password_hash, verify_password
from tests.conftest import TEST_PASSWORD, auth_headers


def _login(client, username, password=TEST_PASSWORD):
    return client.post("/api/auth/login", data={"username": username, "password": password})


class TestPasswords:

    def test_hash_is_not_plaintext(self):
        hashed = get_password_hash("hunter22")
        assert hashed != "hunter22"
        assert verify_password("hunter22", hashed)
        assert not verify_password("hunter23", hashed)

    def test_malformed_hash(self):
        assert verify_password("hunter22", "not-a-bcrypt-hash") is False
        assert verify_password("", get_password_hash("x")) is False


class TestLogin:

    def test_login_returns_token_and_user(self, client, make_user):
        user = make_user("manager", username="maria")
        response = _login(client, "maria")
        assert response.status_code == 200
        body = response.json()
        assert body["tokenType"] == "bearer"
        assert body["accessToken"]
        assert body["user"]["username"] == "maria"
        assert body["user"]["role"] == "manager"
        assert "passwordHash" not in body["user"]
        assert "refresh_token" in response.cookies

        me = client.get("/api/auth/user", headers={"Authorization": f"Bearer {body['accessToken']}"})
        assert me.json()["id"] == user.id

    def test_wrong_password(self, client, make_user):
        make_user("user", username="sam")
        assert _login(client, "sam", "wrong-password").status_code == 401
        assert _login(client, "nobody").status_code == 401

    def test_deactivated_account(self, client, make_user):
        user = make_user("user", username="gone", is_active=False)
        assert _login(client, "gone").status_code == 403
        # 已签发的令牌同样失效
        assert client.get("/api/auth/user", headers=auth_headers(user)).status_code == 401


class TestTokens:

    def test_refresh_with_cookie(self, client, make_user):
        make_user("user", username="rita")
        _login(client, "rita")
        response = client.post("/api/auth/refresh")
        assert response.status_code == 200
        token = response.json()["accessToken"]
        assert client.get("/api/auth/user", headers={"Authorization": f"Bearer {token}"}).status_code == 200

    def test_refresh_without_cookie(self, client):
        assert client.post("/api/auth/refresh").status_code == 401

    def test_refresh_token_is_not_an_access_token(self, client, make_user):
        make_user("user", username="tom")
        token = create_refresh_token({"sub": "tom"})
        response = client.get("/api/auth/user", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    def test_logout_clears_cookie(self, client, make_user):
        make_user("user", username="lee")
        _login(client, "lee")
        assert client.post("/api/auth/logout").json()["message"] == "Logged out successfully"
        assert client.post("/api/auth/refresh").status_code == 401
