# 基础模式
from .base import BaseResponse, default_timestamp

# 项目相关模式
from .project import ProjectSettingsUpdate, ProjectSettingsResponse

# 任务相关模式
from .task import (
    TaskCreate, TaskResponse, TaskStatusUpdate, TaskAssignRequest, TaskCloseRequest,
    AssigneeResponse, TaskStatusLogResponse, ClosureRequestResponse
)

# 聊天相关模式
from .chat import (
    MessageCreate, ChatRoomResponse, MessageResponse, MessageWithMentionsResponse,
    RoomMessagesResponse, MarkMentionReadRequest, MarkRoomMentionsReadRequest,
    ProjectMentionCount
)
