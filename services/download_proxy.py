from typing import AsyncIterator, Optional

import httpx
from fastapi.responses import JSONResponse, Response, StreamingResponse

from core.config import Settings, settings as default_settings
from core.logs import logger
from services.errors import ValidationError
from services.veo_service import require_api_key

# Cabeçalhos do upstream repassados ao chamador
_PASSTHROUGH_HEADERS = ("content-length", "accept-ranges", "content-range")


class DownloadProxy:
    """
    Fronteira de credencial do download: anexa a API key ao locator, busca o
    vídeo e repassa o corpo em streaming, sem bufferizar tudo em memória.
    """

    def __init__(self, cfg: Optional[Settings] = None, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self.cfg = cfg or default_settings
        self._transport = transport

    def _signed_url(self, uri: str, api_key: str) -> httpx.URL:
        try:
            url = httpx.URL(uri)
        except httpx.InvalidURL as e:
            raise ValidationError("Invalid video URI") from e
        if url.scheme != "https" or url.host not in self.cfg.DOWNLOAD_ALLOWED_HOSTS:
            raise ValidationError("Video URI host is not allowed")
        return url.copy_merge_params({"key": api_key})

    async def stream(self, uri: Optional[str], *, range_header: Optional[str] = None) -> Response:
        if not uri:
            raise ValidationError("Video URI is required")
        api_key = require_api_key(self.cfg)
        url = self._signed_url(uri, api_key)

        client = httpx.AsyncClient(timeout=self.cfg.DOWNLOAD_TIMEOUT_S, follow_redirects=True, transport=self._transport)
        headers = {"Range": range_header} if range_header else None
        try:
            upstream = await client.send(client.build_request("GET", url, headers=headers), stream=True)
        except httpx.HTTPError as e:
            await client.aclose()
            # str(e) não inclui a URL assinada
            logger.error("Download do vídeo falhou: %s", e)
            return JSONResponse({"error": "Failed to download video."}, status_code=500)

        if upstream.is_error:
            reason = upstream.reason_phrase or "Failed to fetch video from storage."
            logger.warning("Storage respondeu %s %s para %s", upstream.status_code, reason, uri)
            await upstream.aclose()
            await client.aclose()
            return JSONResponse({"error": reason}, status_code=upstream.status_code)

        out_headers = {"Content-Type": upstream.headers.get("content-type") or "video/mp4"}
        encoded = "content-encoding" in upstream.headers
        for name in _PASSTHROUGH_HEADERS:
            value = upstream.headers.get(name)
            if value and not (encoded and name == "content-length"):
                out_headers[name.title()] = value

        async def _relay() -> AsyncIterator[bytes]:
            # fecha upstream e client mesmo se a leitura falhar no meio
            try:
                async for chunk in upstream.aiter_bytes():
                    yield chunk
            finally:
                await upstream.aclose()
                await client.aclose()

        logger.info("Repassando vídeo %s (%s bytes)", uri, upstream.headers.get("content-length", "?"))
        return StreamingResponse(
            _relay(),
            status_code=upstream.status_code,
            headers=out_headers,
        )
