"""
页面权限解析测试

覆盖：
1. 没有菜单覆盖时结果等于默认角色权限矩阵
2. view 操作时菜单覆盖优先于角色权限（包括停用页面）
3. super_admin 对任意页面/操作都放行
4. 缺失配置一律拒绝
"""
from advantix.models.permission import Page, RolePermission, UserMenuPermission
from advantix.services import permission_service
from advantix.services.seed_service import DEFAULT_PAGES, build_permission_matrix

from tests.conftest import auth_headers


class TestRoleFallback:
    """没有菜单覆盖时按角色矩阵判断"""

    def test_user_work_reports(self, db, make_user):
        user = make_user("user")
        assert permission_service.check_access(db, user.id, "work_reports", "view") is True
        assert permission_service.check_access(db, user.id, "work_reports", "edit") is True
        assert permission_service.check_access(db, user.id, "work_reports", "delete") is False

    def test_matches_seeded_matrix(self, db, make_user):
        """每个角色、每个页面、每个操作都与默认矩阵一致"""
        matrix = build_permission_matrix()
        for role in ("user", "manager", "admin", "client"):
            user = make_user(role)
            for page_key, flags in matrix[role].items():
                for action, expected in zip(("view", "edit", "delete"), flags):
                    actual = permission_service.check_access(db, user.id, page_key, action)
                    assert actual is expected, f"{role} {page_key} {action}"

    def test_admin_has_no_admin_panel(self, db, make_user):
        admin = make_user("admin")
        assert permission_service.check_access(db, admin.id, "admin", "view") is False
        assert permission_service.check_access(db, admin.id, "salary_management", "edit") is True
        assert permission_service.check_access(db, admin.id, "salary_management", "delete") is False


class TestMenuOverride:
    """菜单覆盖只作用于 view"""

    def test_override_grants_view(self, db, make_user):
        user = make_user("user")
        assert permission_service.check_access(db, user.id, "campaigns", "view") is False

        db.add(UserMenuPermission(user_id=user.id, campaign_management=True))
        db.commit()

        assert permission_service.check_access(db, user.id, "campaigns", "view") is True
        # edit 仍然走角色权限
        assert permission_service.check_access(db, user.id, "campaigns", "edit") is False

    def test_override_denies_view(self, db, make_user):
        user = make_user("user")
        db.add(UserMenuPermission(user_id=user.id, work_reports=False))
        db.commit()
        assert permission_service.check_access(db, user.id, "work_reports", "view") is False
        assert permission_service.check_access(db, user.id, "work_reports", "edit") is True

    def test_null_field_falls_back(self, db, make_user):
        user = make_user("user")
        db.add(UserMenuPermission(user_id=user.id, campaign_management=None))
        db.commit()
        assert permission_service.check_access(db, user.id, "work_reports", "view") is True
        assert permission_service.check_access(db, user.id, "campaigns", "view") is False

    def test_override_wins_over_inactive_page(self, db, make_user):
        user = make_user("manager")
        page = db.query(Page).filter(Page.page_key == "campaigns").one()
        page.is_active = False
        db.add(UserMenuPermission(user_id=user.id, campaign_management=True))
        db.commit()
        assert permission_service.check_access(db, user.id, "campaigns", "view") is True
        assert permission_service.check_access(db, user.id, "campaigns", "edit") is False


class TestSuperAdminAndFailClosed:

    def test_super_admin_bypass(self, db, make_user):
        root = make_user("super_admin")
        page = db.query(Page).filter(Page.page_key == "finance").one()
        page.is_active = False
        db.commit()
        for page_key in [p[0] for p in DEFAULT_PAGES] + ["no_such_page"]:
            for action in ("view", "edit", "delete", "approve"):
                assert permission_service.check_access(db, root.id, page_key, action) is True

    def test_unknown_user_denied(self, db):
        assert permission_service.check_access(db, "missing-id", "dashboard", "view") is False

    def test_inactive_user_denied(self, db, make_user):
        user = make_user("admin", is_active=False)
        assert permission_service.check_access(db, user.id, "dashboard", "view") is False

    def test_unknown_page_or_action_denied(self, db, make_user):
        user = make_user("admin")
        assert permission_service.check_access(db, user.id, "no_such_page", "view") is False
        assert permission_service.check_access(db, user.id, "dashboard", "approve") is False

    def test_missing_role_permission_denied(self, db, make_user):
        user = make_user("manager")
        page = db.query(Page).filter(Page.page_key == "dashboard").one()
        db.query(RolePermission).filter(
            RolePermission.role == "manager", RolePermission.page_id == page.id
        ).delete()
        db.commit()
        assert permission_service.check_access(db, user.id, "dashboard", "view") is False


class TestPermissionApi:

    def test_check_endpoint(self, client, make_user):
        user = make_user("user")
        response = client.get(
            "/api/permissions/check/work_reports", params={"action": "delete"}, headers=auth_headers(user)
        )
        assert response.status_code == 200
        assert response.json() == {"hasPermission": False}

    def test_guarded_route_returns_403(self, client, make_user):
        user = make_user("user")
        response = client.get("/api/campaigns", headers=auth_headers(user))
        assert response.status_code == 403
        assert response.json()["code"] == "PERMISSION_DENIED"

    def test_unauthenticated_returns_401(self, client):
        assert client.get("/api/campaigns").status_code == 401

    def test_menu_override_upsert_and_delete(self, client, admin_headers, make_user):
        user = make_user("user")
        response = client.put(
            f"/api/user-menu-permissions/{user.id}",
            json={"campaignManagement": True},
            headers=admin_headers,
        )
        assert response.status_code == 200
        assert response.json()["campaignManagement"] is True

        check = client.get("/api/permissions/check/campaigns", headers=auth_headers(user))
        assert check.json()["hasPermission"] is True

        assert client.delete(f"/api/user-menu-permissions/{user.id}", headers=admin_headers).status_code == 200
        check = client.get("/api/permissions/check/campaigns", headers=auth_headers(user))
        assert check.json()["hasPermission"] is False

    def test_bulk_update_role_permissions(self, client, db, admin_headers, make_user):
        user = make_user("user")
        page = db.query(Page).filter(Page.page_key == "clients").one()
        permission = db.query(RolePermission).filter(
            RolePermission.role == "user", RolePermission.page_id == page.id
        ).one()

        response = client.put(
            "/api/role-permissions/bulk",
            json={"permissions": [{"id": permission.id, "canView": True}]},
            headers=admin_headers,
        )
        assert response.status_code == 200
        assert permission_service.check_access(db, user.id, "clients", "view") is True
