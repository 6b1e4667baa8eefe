"""
CORS 与安全响应头测试

验证：
1. 白名单内的来源能通过预检，白名单外的来源拿不到 Allow-Origin
2. CORS_ORIGINS 支持 JSON 列表与逗号分隔两种写法
3. 每个响应都带安全响应头
"""
import pytest

from advantix.config import _parse_str_list, settings


class TestParseOrigins:
    """测试 CORS_ORIGINS 解析"""

    def test_json_list(self):
        assert _parse_str_list('["http://a.test", " http://b.test "]') == ["http://a.test", "http://b.test"]

    def test_comma_separated(self):
        assert _parse_str_list("http://a.test, http://b.test,,") == ["http://a.test", "http://b.test"]

    def test_broken_json_falls_back_to_commas(self):
        assert _parse_str_list('["http://a.test"') == ['["http://a.test"']

    def test_empty_values(self):
        assert _parse_str_list(None) == []
        assert _parse_str_list("   ") == []
        assert _parse_str_list(["", " x "]) == ["x"]


class TestCORSPreflight:

    def _preflight(self, client, origin):
        return client.options(
            "/api/auth/user",
            headers={"Origin": origin, "Access-Control-Request-Method": "GET"},
        )

    def test_allowed_origin(self, client):
        origin = settings.CORS_ORIGINS[0]
        response = self._preflight(client, origin)
        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == origin
        assert response.headers["access-control-allow-credentials"] == "true"

    @pytest.mark.parametrize("origin", [
        "https://example.com",
        "http://localhost.attacker.com",
        "http://localhost:3000.evil.com",
    ])
    def test_unknown_origin_rejected(self, client, origin):
        response = self._preflight(client, origin)
        assert "access-control-allow-origin" not in response.headers


class TestSecurityHeaders:

    def test_headers_present(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}
        assert response.headers["x-frame-options"] == "DENY"
        assert response.headers["x-content-type-options"] == "nosniff"
        assert "referrer-policy" in response.headers
