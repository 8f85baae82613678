"""
Cliente do lado do chamador: submete, acompanha e baixa vídeos através do
nosso backend (`/api/generate`, `/api/status`, `/api/download`).

Nunca recebe a API key do servidor; locators que exigem credencial passam
sempre pelo proxy de download.
"""
import asyncio
import base64
import json
import mimetypes
import os
from typing import Any, Dict, List, Optional, Tuple

import httpx

from core.config import Settings, settings as default_settings
from core.logs import logger
from schemas.generation import (
    ArtifactReference,
    DownloadedArtifact,
    GenerationRequest,
    GenerationResult,
    OperationStatus,
    PollState,
)
from services.errors import (
    GenericServiceError,
    JobCancelledError,
    NoArtifactsError,
    PollTimeoutError,
    UpstreamDownloadError,
    ValidationError,
    VideoGenError,
    classify,
    from_error_body,
)


def extract_artifacts(handle: Dict[str, Any], credential_hosts: List[str]) -> List[ArtifactReference]:
    response = handle.get("response") or {}
    if not isinstance(response, dict):
        return []
    # REST devolve generateVideoResponse.generatedSamples; o SDK normaliza para generatedVideos
    samples = (response.get("generateVideoResponse") or {}).get("generatedSamples")
    if samples is None:
        samples = response.get("generatedVideos")

    refs: List[ArtifactReference] = []
    for sample in samples or []:
        video = sample.get("video") if isinstance(sample, dict) else None
        uri = video.get("uri") if isinstance(video, dict) else None
        if isinstance(uri, str) and uri:
            try:
                needs_key = httpx.URL(uri).host in credential_hosts
            except httpx.InvalidURL:
                # locator inválido segue pelo proxy
                needs_key = True
            refs.append(ArtifactReference(locator=uri, requires_credential=needs_key))
    return refs


def operation_status(handle: Dict[str, Any], credential_hosts: List[str]) -> OperationStatus:
    """Deriva o status de um envelope de operação (nada é armazenado)."""
    if not handle.get("done"):
        return OperationStatus(state=PollState.SUBMITTED, done=False, handle=handle)

    failure = handle.get("error")
    if failure:
        failure = failure if isinstance(failure, dict) else {"message": str(failure)}
        return OperationStatus(state=PollState.DONE_FAILURE, done=True, failure=failure, handle=handle)

    artifacts = extract_artifacts(handle, credential_hosts)
    state = PollState.DONE_SUCCESS if artifacts else PollState.DONE_EMPTY
    return OperationStatus(state=state, done=True, artifacts=artifacts, handle=handle)


_EXTENSIONS = {"video/mp4": ".mp4", "video/webm": ".webm", "video/quicktime": ".mov"}


def artifact_filename(index: int, content_type: Optional[str]) -> str:
    ctype = (content_type or "").split(";", 1)[0].strip().lower()
    ext = _EXTENSIONS.get(ctype) or mimetypes.guess_extension(ctype) or ".mp4"
    return f"video{index}{ext}"


def save_artifact(artifact: DownloadedArtifact, directory: str) -> str:
    os.makedirs(directory, exist_ok=True)
    path = os.path.join(directory, artifact.filename)
    with open(path, "wb") as fh:
        fh.write(artifact.data)
    logger.info("Vídeo salvo em %s (%d bytes)", path, len(artifact.data))
    return path


class GenerationClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        cfg: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        interval_s: Optional[float] = None,
        max_attempts: Optional[int] = None,
    ) -> None:
        self.cfg = cfg or default_settings
        self.base_url = (base_url or self.cfg.API_BASE_URL).rstrip("/")
        self.interval_s = self.cfg.POLL_INTERVAL_S if interval_s is None else interval_s
        self.max_attempts = self.cfg.POLL_MAX_ATTEMPTS if max_attempts is None else max_attempts
        self._transport = transport

    def _client(self, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.base_url, timeout=timeout, transport=self._transport)

    async def _post_operation(self, path: str, payload: Dict[str, Any], *, fallback: str) -> Dict[str, Any]:
        try:
            async with self._client(self.cfg.REQUEST_TIMEOUT_S) as client:
                resp = await client.post(path, json=payload)
        except httpx.HTTPError as e:
            raise GenericServiceError(f"{fallback} ({e})") from e

        try:
            body = resp.json()
        except ValueError:
            body = None
        if resp.status_code >= 400:
            raise from_error_body(body, fallback=fallback)

        operation = body.get("operation") if isinstance(body, dict) else None
        if not isinstance(operation, dict):
            raise GenericServiceError(f"{fallback} (resposta sem 'operation')")
        return operation

    async def submit(self, request: GenerationRequest) -> Dict[str, Any]:
        """Cria um job novo. Chamar uma única vez por ação do usuário."""
        if not request.prompt or not request.prompt.strip():
            raise ValidationError("Please enter a prompt to generate a video.")

        image_b64 = base64.b64encode(request.image_bytes).decode("utf-8") if request.image_bytes else None
        payload = {"prompt": request.prompt, "imageBytes": image_b64, "imageMimeType": request.image_mime_type}
        operation = await self._post_operation("/api/generate", payload, fallback="Failed to start video generation.")
        logger.info("Job submetido: %s", operation.get("name"))
        return operation

    async def _wait(self, cancel: Optional[asyncio.Event]) -> None:
        if cancel is None:
            await asyncio.sleep(self.interval_s)
            return
        try:
            await asyncio.wait_for(cancel.wait(), timeout=self.interval_s)
        except asyncio.TimeoutError:
            return

    @staticmethod
    def _check_cancel(cancel: Optional[asyncio.Event]) -> None:
        if cancel is not None and cancel.is_set():
            raise JobCancelledError("Video generation was cancelled.")

    async def poll_until_terminal(
        self,
        handle: Dict[str, Any],
        *,
        cancel: Optional[asyncio.Event] = None,
    ) -> OperationStatus:
        hosts = self.cfg.DOWNLOAD_ALLOWED_HOSTS
        status = operation_status(handle, hosts)
        attempts = 0
        while not status.done:
            if attempts >= self.max_attempts:
                logger.warning("Operação %s não terminou após %d consultas", handle.get("name"), attempts)
                raise PollTimeoutError(
                    f"Video generation did not finish after {attempts} status checks."
                )
            self._check_cancel(cancel)
            await self._wait(cancel)
            self._check_cancel(cancel)

            logger.info("Consultando status da operação (tentativa %d/%d)", attempts + 1, self.max_attempts)
            handle = await self._post_operation(
                "/api/status", {"operation": handle}, fallback="Failed to check video generation status."
            )
            attempts += 1
            status = operation_status(handle, hosts)
            if not status.done:
                status.state = PollState.POLLING

        if status.state is PollState.DONE_FAILURE:
            raise classify(json.dumps(status.failure))
        logger.info("Operação %s terminou: %s", handle.get("name"), status.state.value)
        return status

    async def _download_error(self, resp: httpx.Response) -> VideoGenError:
        await resp.aread()
        try:
            body = resp.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get("kind") in ("configuration", "validation"):
            return from_error_body(body, fallback="Could not download the generated video.")
        reason = body.get("error") if isinstance(body, dict) else None
        reason = reason if isinstance(reason, str) and reason else resp.reason_phrase
        return UpstreamDownloadError(
            f"Could not download the generated video: {resp.status_code} {reason}",
            status_code=resp.status_code,
            reason=reason or "",
        )

    async def retrieve(self, artifact: ArtifactReference, index: int) -> DownloadedArtifact:
        if artifact.requires_credential:
            path, params = "/api/download", {"uri": artifact.locator}
        else:
            path, params = artifact.locator, None

        data = bytearray()
        try:
            async with self._client(self.cfg.DOWNLOAD_TIMEOUT_S) as client:
                async with client.stream("GET", path, params=params) as resp:
                    if resp.is_error:
                        raise await self._download_error(resp)
                    content_type = resp.headers.get("content-type") or "video/mp4"
                    async for chunk in resp.aiter_bytes():
                        data.extend(chunk)
        except httpx.HTTPError as e:
            raise GenericServiceError(f"Could not download the generated video. ({e})") from e

        return DownloadedArtifact(
            filename=artifact_filename(index, content_type),
            content_type=content_type,
            data=bytes(data),
        )

    async def retrieve_all(
        self, artifacts: List[ArtifactReference]
    ) -> Tuple[List[DownloadedArtifact], Dict[int, VideoGenError]]:
        results = await asyncio.gather(
            *(self.retrieve(artifact, i) for i, artifact in enumerate(artifacts)),
            return_exceptions=True,
        )
        downloaded: List[DownloadedArtifact] = []
        failures: Dict[int, VideoGenError] = {}
        for i, result in enumerate(results):
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, BaseException):
                logger.error("Download do vídeo %d falhou: %s", i, result)
                failures[i] = classify(result)
            else:
                downloaded.append(result)
        return downloaded, failures

    async def generate(
        self,
        request: GenerationRequest,
        *,
        cancel: Optional[asyncio.Event] = None,
    ) -> GenerationResult:
        """Pipeline completo: submit -> poll até terminar -> download de cada vídeo."""
        handle = await self.submit(request)
        status = await self.poll_until_terminal(handle, cancel=cancel)
        if status.state is PollState.DONE_EMPTY:
            raise NoArtifactsError("No videos were generated, or the operation failed.")

        downloaded, failures = await self.retrieve_all(status.artifacts)
        return GenerationResult(operation=status.handle, artifacts=downloaded, failures=failures)
