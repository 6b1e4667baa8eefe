"""
创建或重置用户

用法:
    python scripts/create_user.py <username> <password> [role] [--client-id ID]
"""
import argparse
import sys
import os

# 添加项目根目录到 Python 路径
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from advantix.database import SessionLocal
from advantix.exceptions import AdvantixError
from advantix.middleware.auth import get_password_hash
from advantix.models.user import UserRole
from advantix.services import user_service


def main(argv=None):
    parser = argparse.ArgumentParser(description="创建或重置用户")
    parser.add_argument("username")
    parser.add_argument("password")
    parser.add_argument("role", nargs="?", default=UserRole.USER.value, choices=[r.value for r in UserRole])
    parser.add_argument("--name", default=None)
    parser.add_argument("--client-id", default=None)
    args = parser.parse_args(argv)

    db = SessionLocal()
    try:
        existing = user_service.get_user_by_username(db, args.username)
        if existing:
            # 已存在则只重置密码与角色
            existing.password_hash = get_password_hash(args.password)
            existing.role = args.role
            db.commit()
            print(f"已更新用户：{args.username} ({args.role})")
        else:
            user_service.create_user(db, {
                "username": args.username,
                "password": args.password,
                "role": args.role,
                "name": args.name,
                "client_id": args.client_id,
            })
            print(f"已创建用户：{args.username} ({args.role})")
    except AdvantixError as e:
        print(f"创建失败：{e.message}")
        return 1
    finally:
        db.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
