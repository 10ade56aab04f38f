from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.models.generated_api import ApiStatus


class ApiSetup(BaseModel):
    """The model's proposal for a new API, edited by the user before creation."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(min_length=1, max_length=100)
    description: str = ""
    system_prompt: str = Field(alias="systemPrompt", min_length=1)
    input_schema: dict = Field(alias="inputSchema")
    output_schema: dict = Field(alias="outputSchema")
    example_input: Optional[dict] = Field(default=None, alias="exampleInput")
    example_output: Optional[dict] = Field(default=None, alias="exampleOutput")
    suggested_endpoint: Optional[str] = Field(default=None, alias="suggestedEndpoint")


class ApiConfigOverrides(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    temperature: Optional[float] = Field(default=None, ge=0, le=2)
    max_tokens: Optional[int] = Field(default=None, alias="maxTokens", ge=1, le=16000)


class GenerateSetupRequest(BaseModel):
    prompt: str = Field(min_length=10, max_length=5000)


class GenerateSetupResponse(BaseModel):
    setup: dict


class CreateApiRequest(BaseModel):
    prompt: str = Field(min_length=1, max_length=5000)
    setup: ApiSetup
    config: Optional[ApiConfigOverrides] = None


class CreateApiResponse(BaseModel):
    id: int
    slug: str
    api_key: str
    endpoint: str


class UpdateApiRequest(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = None
    status: Optional[ApiStatus] = None
    system_prompt: Optional[str] = Field(default=None, min_length=1)
    configuration: Optional[dict[str, Any]] = None


class ApiKeyBrief(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    key_prefix: str
    is_active: bool


class ApiKeyOut(ApiKeyBrief):
    api_id: int
    expires_at: Optional[datetime] = None
    usage_count: int
    last_used_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class IssuedApiKeyOut(ApiKeyOut):
    key: str


class ApiKeyListItem(ApiKeyOut):
    api_name: str
    api_slug: str


class IssueApiKeyRequest(BaseModel):
    name: str = Field(default="API Key", min_length=1, max_length=100)
    expires_at: Optional[datetime] = None


class ApiSummaryOut(BaseModel):
    id: int
    name: str
    slug: str
    description: str
    status: ApiStatus
    endpoint: str
    usage_count: int
    request_count: int
    last_used_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    api_keys: list[ApiKeyBrief]


class ApiDetailOut(ApiSummaryOut):
    user_prompt: str
    system_prompt: str
    input_schema: dict
    output_schema: dict
    configuration: dict


class ApisResponse(BaseModel):
    items: list[ApiSummaryOut]
