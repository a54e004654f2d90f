from pydantic import BaseModel, field_validator
from typing import Any, List, Literal, Optional


class ImageAttachment(BaseModel):
    data: Optional[str] = None
    mime: Optional[str] = None

    @field_validator('data', 'mime', mode='before')
    @classmethod
    def as_text(cls, v):
        # empty or falsy values count as absent
        return str(v) if v else None


class ChatMessage(BaseModel):
    role: Optional[str] = None
    content: Any = None
    # list of base64 strings (legacy PNG) or {data, mime} objects; anything else means no images
    images: Any = None

    @property
    def has_images(self) -> bool:
        return isinstance(self.images, list) and len(self.images) > 0

    def attachments(self) -> List[ImageAttachment]:
        if not isinstance(self.images, list):
            return []
        result = []
        for image in self.images:
            if isinstance(image, str):
                result.append(ImageAttachment(data=image))
            elif isinstance(image, dict):
                result.append(ImageAttachment.model_validate(image))
        return result


class ChatRequest(BaseModel):
    model: str
    messages: List[ChatMessage]

    @field_validator('model')
    @classmethod
    def model_not_empty(cls, v):
        if not v:
            raise ValueError('model is required')
        return v


class TextBlock(BaseModel):
    type: Literal["text"] = "text"
    text: str


class ImageURL(BaseModel):
    url: str


class ImageBlock(BaseModel):
    type: Literal["image_url"] = "image_url"
    image_url: ImageURL


class CompletionRequest(BaseModel):
    """Body sent to the provider's chat completions endpoint."""
    model: str
    messages: List[dict]
    temperature: float = 0.4
    max_tokens: int = 1500
    stream: bool = False


class ChatResponse(BaseModel):
    text: str


class ModelDescriptor(BaseModel):
    name: str


class ModelsResponse(BaseModel):
    models: List[ModelDescriptor]


class HealthResponse(BaseModel):
    ok: bool = True
    uptimeSec: int
    apiKey: Literal["set", "MISSING"]


class ErrorDetail(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    error: ErrorDetail
