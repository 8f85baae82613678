import enum
from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional

from services.errors import VideoGenError


class PollState(str, enum.Enum):
    SUBMITTED = "SUBMITTED"
    POLLING = "POLLING"
    DONE_SUCCESS = "DONE_SUCCESS"
    DONE_EMPTY = "DONE_EMPTY"
    DONE_FAILURE = "DONE_FAILURE"


class GenerationRequest(BaseModel):
    prompt: str
    image_bytes: Optional[bytes] = None
    image_mime_type: str = "image/png"


class ArtifactReference(BaseModel):
    locator: str
    requires_credential: bool = True


class OperationStatus(BaseModel):
    state: PollState
    done: bool
    artifacts: List[ArtifactReference] = Field(default_factory=list)
    failure: Optional[Dict[str, Any]] = None
    handle: Dict[str, Any]


class DownloadedArtifact(BaseModel):
    filename: str
    content_type: str
    data: bytes


class GenerationResult(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    operation: Dict[str, Any]
    artifacts: List[DownloadedArtifact] = Field(default_factory=list)
    # erros já classificados, isolados por artefato (índice -> erro)
    failures: Dict[int, VideoGenError] = Field(default_factory=dict)
