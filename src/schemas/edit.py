from pydantic import BaseModel


class EditRequestBody(BaseModel):
    image: str | None = None
    prompt: str | None = None
    provider: str | None = None


class EditResponse(BaseModel):
    result: str
    provider: str


class ErrorResponse(BaseModel):
    error: str


class HealthResponse(BaseModel):
    status: str
    providers: dict[str, bool]
    default_provider: str | None = None
