"""Source (flat prompt) and target (chat completion) transport models."""

from __future__ import annotations

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class SourceRequest(BaseModel):
    model: str
    prompt: str = ""


class SourceResponse(BaseModel):
    model: str | None = None
    response: str


class TargetMessage(BaseModel):
    model_config = ConfigDict(extra="ignore")

    role: str
    content: str | None = None


class TargetRequest(BaseModel):
    model: str
    messages: list[TargetMessage] = Field(default_factory=list)


class TargetChoice(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    message: TargetMessage | None = None
    finish_reason: str | None = Field(
        default=None,
        validation_alias=AliasChoices("finish_reason", "finishReason"),
    )


class TargetResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    object: str | None = None
    created: int | None = None
    model: str | None = None
    choices: list[TargetChoice | None] | None = None


class UpstreamModel(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    object: str | None = None
    created: int | None = None
    owned_by: str | None = None


class UpstreamModelList(BaseModel):
    model_config = ConfigDict(extra="ignore")

    object: str | None = None
    data: list[UpstreamModel] = Field(default_factory=list)


class SourceModelDetails(BaseModel):
    parent_model: str = ""
    format: str = ""
    family: str = ""
    families: list[str] | None = None
    parameter_size: str = ""
    quantization_level: str = ""


class SourceModelTag(BaseModel):
    name: str
    model: str
    modified_at: str
    size: int = 0
    digest: str = ""
    details: SourceModelDetails = Field(default_factory=SourceModelDetails)


class SourceTagsResponse(BaseModel):
    models: list[SourceModelTag] = Field(default_factory=list)
