"""Wire models of the AI chat endpoints (camelCase, as the web client sends them)."""

from typing import Any, Dict, List, Literal, Optional

from pydantic import AliasChoices, BaseModel, Field, SecretStr


class HistoryMessage(BaseModel):
    role: Literal["system", "user", "assistant"]
    content: str = Field(..., min_length=1)


class ChatRequest(BaseModel):
    """One user message plus the client's view of the conversation."""

    message: str = Field(..., min_length=1, description="What the user typed")
    sessionId: Optional[str] = Field(None, description="Conversation id; 'default' when omitted")
    workspaceId: Optional[str] = Field(None, description="Slug of the workspace open in the UI")
    projectId: Optional[str] = Field(None, description="Slug of the project open in the UI")
    organizationId: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("organizationId", "currentOrganizationId"),
        description="Organization whose workspaces are offered to the model",
    )
    history: List[HistoryMessage] = Field(default_factory=list)


class ChatAction(BaseModel):
    name: str
    parameters: Dict[str, Any] = Field(default_factory=dict)


class ChatResponse(BaseModel):
    message: str = ""
    action: Optional[ChatAction] = None
    actionChain: Optional[List[ChatAction]] = None
    success: bool
    error: Optional[str] = None


class TestConnectionRequest(BaseModel):
    apiKey: Optional[SecretStr] = Field(None, description="Provider API key; optional for local models")
    apiUrl: str = Field(..., description="Provider base URL")
    model: str = Field(..., description="Model identifier")


class TestConnectionResponse(BaseModel):
    success: bool
    message: Optional[str] = None
    error: Optional[str] = None


class ClearContextResponse(BaseModel):
    success: bool = True
