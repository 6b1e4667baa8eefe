"""
业务异常

服务层抛出带 code 的异常，由 main.py 中的异常处理器统一转换为 HTTP 响应:
    {"detail": "...", "code": "NOT_FOUND", "errors": [...]}
"""
from typing import List, Optional


class AdvantixError(Exception):
    """所有业务异常的基类"""

    code: str = "ADVANTIX_ERROR"
    status_code: int = 500

    def __init__(self, message: str = "", errors: Optional[List[str]] = None):
        self.message = message
        self.errors = errors or []
        super().__init__(message)


class NotFoundError(AdvantixError):
    """记录不存在（更新/删除/按 ID 读取）"""

    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, entity: str, entity_id: str):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found: {entity_id}")


class ValidationError(AdvantixError):
    """输入不合法，在写入前被拒绝"""

    code = "VALIDATION_ERROR"
    status_code = 400


class ConflictError(AdvantixError):
    """唯一约束冲突"""

    code = "CONFLICT"
    status_code = 409


class PermissionDeniedError(AdvantixError):
    """权限解析拒绝访问"""

    code = "PERMISSION_DENIED"
    status_code = 403

    def __init__(self, page_key: str, action: str):
        self.page_key = page_key
        self.action = action
        super().__init__(f"Permission denied: {action} on {page_key}")


class StoreError(AdvantixError):
    """持久层失败，保留原始错误信息用于排查"""

    code = "STORE_ERROR"
    status_code = 500

    def __init__(self, message: str, original: Optional[BaseException] = None):
        self.original = original
        if original is not None:
            message = f"{message}: {original}"
        super().__init__(message)


class ImmutabilityViolationError(AdvantixError):
    """试图修改或删除只追加的记录（审计日志）"""

    code = "IMMUTABILITY_VIOLATION"
    status_code = 409

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(f"Immutability violation on {entity_type} {entity_id}: {reason}")
