"""服务层模块初始化文件

提供服务层的统一导入接口
"""

from .access_service import AccessGuard
from .task_service import TaskService
from .closure_service import TaskClosureService
from .chat_service import ChatRoomService, ChatMessageService, extract_mentions
from .read_state_service import ReadStateService
from .project_settings_service import ProjectSettingsService

__all__ = [
    "AccessGuard",
    "TaskService",
    "TaskClosureService",
    "ChatRoomService",
    "ChatMessageService",
    "extract_mentions",
    "ReadStateService",
    "ProjectSettingsService",
]
