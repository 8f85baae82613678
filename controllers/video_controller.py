from typing import Any, Dict, Optional

from fastapi import UploadFile
from fastapi.responses import Response

from services.download_proxy import DownloadProxy
from services.veo_service import VeoService


class VideoController:
    def __init__(self, service: VeoService, proxy: DownloadProxy):
        self.service = service
        self.proxy = proxy


    async def generate(self, *, prompt: Optional[str], image_bytes: Optional[str], image_mime_type: str) -> Dict[str, Any]:
        return await self.service.submit(prompt=prompt, image_bytes=image_bytes, image_mime_type=image_mime_type)

    async def generate_upload(self, *, file: UploadFile, prompt: Optional[str]) -> Dict[str, Any]:
        data = await file.read()
        return await self.service.submit_upload(prompt=prompt, data=data, content_type=file.content_type)

    async def status(self, *, operation: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        return await self.service.fetch_status(operation)

    async def download(self, *, uri: Optional[str], range_header: Optional[str]) -> Response:
        return await self.proxy.stream(uri, range_header=range_header)
