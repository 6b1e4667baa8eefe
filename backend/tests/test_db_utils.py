"""
数据库写入辅助测试：完整性错误分类、部分更新的空值校验
"""
import pytest

from advantix.exceptions import ConflictError, ValidationError
from advantix.models.gher import GherPartner, GherTag
from advantix.utils.db_utils import apply_changes, commit_or_raise, flush_or_raise


class TestIntegrityErrors:

    def test_unique_violation_is_conflict(self, db):
        db.add(GherTag(name="Feed", type="expense"))
        db.commit()
        db.add(GherTag(name="Feed", type="expense"))
        with pytest.raises(ConflictError) as exc:
            commit_or_raise(db, "create tag", "Tag 'Feed' (expense) already exists")
        assert exc.value.message == "Tag 'Feed' (expense) already exists"

    def test_not_null_violation_is_validation_error(self, db):
        db.add(GherPartner(name=None))
        with pytest.raises(ValidationError):
            commit_or_raise(db, "create partner")
        assert db.query(GherPartner).count() == 0

    def test_flush_is_translated(self, db):
        db.add(GherPartner(name=None))
        with pytest.raises(ValidationError):
            flush_or_raise(db, "create partner")


class TestApplyChanges:

    def test_null_for_required_column(self, db):
        partner = GherPartner(name="Karim", phone="017")
        db.add(partner)
        db.commit()

        with pytest.raises(ValidationError) as exc:
            apply_changes(partner, {"phone": "018", "name": None})
        assert "name" in exc.value.message
        # 校验在赋值之前，其他字段也未改动
        assert partner.phone == "017"

    def test_null_for_nullable_column(self, db):
        partner = GherPartner(name="Karim", phone="017")
        apply_changes(partner, {"phone": None})
        assert partner.phone is None
