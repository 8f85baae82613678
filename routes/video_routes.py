from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile

from controllers.video_controller import VideoController
from schemas.video import ErrorResponse, GenerateRequest, OperationResponse, StatusRequest
from services.download_proxy import DownloadProxy
from services.veo_service import VeoService

router = APIRouter(prefix="/api", tags=["video"])

ERROR_RESPONSES = {400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}}


def get_veo_service() -> VeoService:
    return VeoService()


def get_download_proxy() -> DownloadProxy:
    return DownloadProxy()


def get_controller(
        service: VeoService = Depends(get_veo_service),
        proxy: DownloadProxy = Depends(get_download_proxy),
) -> VideoController:
    return VideoController(service, proxy)


@router.post("/generate", response_model=OperationResponse, responses=ERROR_RESPONSES)
async def generate(body: GenerateRequest, ctrl: VideoController = Depends(get_controller)):
    operation = await ctrl.generate(
        prompt=body.prompt,
        image_bytes=body.imageBytes,
        image_mime_type=body.imageMimeType,
    )
    return OperationResponse(operation=operation)


@router.post("/generate-upload", response_model=OperationResponse, responses=ERROR_RESPONSES)
async def generate_upload(
    file: UploadFile = File(...),
    prompt: str | None = Form(default=None),
    ctrl: VideoController = Depends(get_controller),
):
    operation = await ctrl.generate_upload(file=file, prompt=prompt)
    return OperationResponse(operation=operation)


@router.post("/status", response_model=OperationResponse, responses=ERROR_RESPONSES)
async def status(body: StatusRequest, ctrl: VideoController = Depends(get_controller)):
    operation = await ctrl.status(operation=body.operation)
    return OperationResponse(operation=operation)


@router.get("/download", responses=ERROR_RESPONSES)
async def download(request: Request, uri: str | None = Query(default=None), ctrl: VideoController = Depends(get_controller)):
    return await ctrl.download(uri=uri, range_header=request.headers.get("range"))
