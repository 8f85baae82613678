from pydantic import BaseModel, Field
from typing import Any, Dict, Optional


class GenerateRequest(BaseModel):
    # prompt opcional aqui para responder 400 (e não 422) quando ausente
    prompt: Optional[str] = None
    imageBytes: Optional[str] = Field(default=None, description="Imagem de referência em base64 (sem prefixo data:)")
    imageMimeType: str = Field(default="image/png")


class StatusRequest(BaseModel):
    operation: Optional[Dict[str, Any]] = None


class OperationResponse(BaseModel):
    operation: Dict[str, Any]


class ErrorResponse(BaseModel):
    error: str
    kind: str = "generic"
