from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List
from datetime import datetime

# 发送消息模式
class MessageCreate(BaseModel):
    content: str = Field(..., max_length=5000, description="消息内容，支持 @用户名")

# 聊天室响应模式
class ChatRoomResponse(BaseModel):
    id: str
    project_id: str
    name: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

# 消息响应模式
class MessageResponse(BaseModel):
    id: str
    room_id: str
    author_id: str
    content: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

# 带提及信息的消息响应模式
class MessageWithMentionsResponse(MessageResponse):
    author_name: Optional[str] = None
    author_username: Optional[str] = None
    mentioned_user_ids: List[str] = Field(default_factory=list)
    mentions_me: bool = False
    mention_read: Optional[bool] = None

# 消息列表响应模式
class RoomMessagesResponse(BaseModel):
    room: ChatRoomResponse
    messages: List[MessageWithMentionsResponse]

# 标记单条消息提及已读
class MarkMentionReadRequest(BaseModel):
    message_id: str

# 标记聊天室提及全部已读
class MarkRoomMentionsReadRequest(BaseModel):
    room_id: str

# 项目未读提及统计
class ProjectMentionCount(BaseModel):
    project_id: str
    project_name: str
    mention_count: int
