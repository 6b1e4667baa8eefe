"""
初始化数据库：建表 + 默认页面 / 角色权限 / 超级管理员 / 汇率
"""
import sys
import os

# 添加项目根目录到 Python 路径
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from advantix.config import settings
from advantix.database import init_db
from advantix.logging_config import setup_logging


if __name__ == "__main__":
    setup_logging(settings.LOG_DIR, settings.LOG_LEVEL)
    init_db()
    print("数据库初始化完成！")
    print(f"默认超级管理员：{settings.DEFAULT_ADMIN_USERNAME}")
    print("⚠️  请立即修改默认密码！")
