from pydantic import BaseModel, Field
from typing import List, Optional, Dict, Any
from datetime import datetime
import re


_AT_MENTION_RE = re.compile(r"<at>\s*(.*?)\s*</at>", re.IGNORECASE | re.DOTALL)


class ExternalIdentity(BaseModel):
    """Chat platform view of the sender. Never persisted."""
    object_id: Optional[str] = None
    email: Optional[str] = None
    principal_name: Optional[str] = None
    display_name: Optional[str] = None


class InternalUser(BaseModel):
    id: str
    email: str
    name: Optional[str] = None
    role_name: Optional[str] = None

    class Config:
        from_attributes = True


# Inbound Bot Framework activity (only the fields the bot reads)

class ChannelAccount(BaseModel):
    id: Optional[str] = None
    name: Optional[str] = None
    aad_object_id: Optional[str] = Field(None, alias="aadObjectId")
    email: Optional[str] = None
    user_principal_name: Optional[str] = Field(None, alias="userPrincipalName")
    upn: Optional[str] = None
    properties: Dict[str, Any] = Field(default_factory=dict)

    class Config:
        populate_by_name = True


class ConversationRef(BaseModel):
    id: Optional[str] = None


class ChannelInfo(BaseModel):
    id: Optional[str] = None
    name: Optional[str] = None


class TeamsChannelData(BaseModel):
    channel: Optional[ChannelInfo] = None
    team: Optional[ChannelInfo] = None


class ChatActivity(BaseModel):
    type: str = Field(..., description="Activity type; only 'message' is processed")
    id: Optional[str] = None
    text: Optional[str] = None
    from_: Optional[ChannelAccount] = Field(None, alias="from")
    recipient: Optional[ChannelAccount] = None
    service_url: Optional[str] = Field(None, alias="serviceUrl")
    conversation: Optional[ConversationRef] = None
    channel_data: Optional[TeamsChannelData] = Field(None, alias="channelData")

    class Config:
        populate_by_name = True

    @property
    def is_message(self) -> bool:
        return self.type.lower() == "message"

    @property
    def channel_id(self) -> str:
        if self.channel_data and self.channel_data.channel and self.channel_data.channel.id:
            return self.channel_data.channel.id
        return self.conversation.id if self.conversation and self.conversation.id else ""

    @property
    def team_id(self) -> Optional[str]:
        if self.channel_data and self.channel_data.team:
            return self.channel_data.team.id
        return None

    @property
    def sender_id(self) -> str:
        sender = self.from_
        if sender is None:
            return ""
        return sender.aad_object_id or sender.id or ""

    @property
    def plain_text(self) -> str:
        """Message text with Teams ``<at>Name</at>`` markup rewritten to ``@Name``."""
        return _AT_MENTION_RE.sub(lambda m: f"@{m.group(1)}", self.text or "")

    def identity(self) -> ExternalIdentity:
        sender = self.from_ or ChannelAccount()
        return ExternalIdentity(
            object_id=sender.aad_object_id or sender.id,
            email=sender.email or sender.properties.get("email"),
            principal_name=sender.user_principal_name or sender.upn,
            display_name=sender.name,
        )


class ChatReply(BaseModel):
    type: str = "message"
    text: str


# Channel bindings (admin API)

class ChannelBindingUpsert(BaseModel):
    team_id: str = Field(..., min_length=1, description="Chat team the channel belongs to")
    project_id: str = Field(..., min_length=1, description="EZTest project to bind")
    configured_by: str = Field(..., min_length=1, description="Admin performing the change")


class ChannelBinding(BaseModel):
    channel_id: str
    team_id: str
    project_id: str
    configured_by: str
    project_name: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ChannelBindingList(BaseModel):
    items: List[ChannelBinding] = Field(default_factory=list)
    total: int = 0
