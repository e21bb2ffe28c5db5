"""
枚举定义模块
包含系统中所有的枚举类型定义
"""
import enum


class TaskStatus(str, enum.Enum):
    """任务状态枚举"""
    OPEN = "OPEN"                # 待处理
    IN_PROGRESS = "IN_PROGRESS"  # 进行中
    BLOCKED = "BLOCKED"          # 阻塞
    DONE = "DONE"                # 已完成
    CANCELED = "CANCELED"        # 已取消

    @classmethod
    def terminal_statuses(cls):
        """终态：只能由任务创建人通过关闭流程进入"""
        return (cls.DONE, cls.CANCELED)

    @property
    def is_terminal(self) -> bool:
        return self in TaskStatus.terminal_statuses()


# 看板分组顺序
TASK_STATUS_ORDER = [
    TaskStatus.OPEN,
    TaskStatus.IN_PROGRESS,
    TaskStatus.BLOCKED,
    TaskStatus.DONE,
    TaskStatus.CANCELED,
]


class TaskPriority(str, enum.Enum):
    """任务优先级枚举"""
    LOW = "LOW"        # 低优先级
    MEDIUM = "MEDIUM"  # 中等优先级
    HIGH = "HIGH"      # 高优先级
    URGENT = "URGENT"  # 紧急


class ClosureRequestStatus(str, enum.Enum):
    """关闭申请状态枚举"""
    PENDING = "PENDING"            # 待创建人处理
    ACKNOWLEDGED = "ACKNOWLEDGED"  # 创建人已确认


class ProjectStatus(str, enum.Enum):
    """项目状态枚举（软状态，不做物理删除）"""
    ACTIVE = "ACTIVE"      # 进行中
    CLOSED = "CLOSED"      # 已关闭
    ARCHIVED = "ARCHIVED"  # 已归档


class MemberRole(str, enum.Enum):
    """项目成员角色枚举"""
    ADMIN = "ADMIN"    # 管理员
    EDITOR = "EDITOR"  # 编辑者
    VIEWER = "VIEWER"  # 只读成员
