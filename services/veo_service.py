import base64
import re
from typing import Any, Dict, Optional

import httpx

from core.config import Settings, settings as default_settings
from core.logs import logger
from services.errors import ConfigurationError, GenericServiceError, ValidationError, classify

# Nomes aceitos: "models/<model>/operations/<id>" ou "operations/<id>"
_OPERATION_NAME = re.compile(r"^(models/[\w.\-]+/)?operations/[\w.\-]+$")


def require_api_key(cfg: Settings) -> str:
    api_key = cfg.API_KEY
    if not api_key:
        logger.error("API_KEY environment variable not set")
        raise ConfigurationError("Server configuration error: API key not set.")
    return api_key


class VeoService:
    """Lado confiável do Job Submitter e do Poller: fala com a API do Veo usando a chave do servidor."""

    def __init__(self, cfg: Optional[Settings] = None, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self.cfg = cfg or default_settings
        self.base_url = self.cfg.GENAI_BASE_URL.rstrip("/")
        self.model = self.cfg.VEO_MODEL
        self._transport = transport

    def _client(self, api_key: str) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.cfg.REQUEST_TIMEOUT_S,
            transport=self._transport,
            headers={"x-goog-api-key": api_key, "Content-Type": "application/json"},
        )

    def _build_payload(self, prompt: str, image_bytes: Optional[str], image_mime_type: str) -> Dict[str, Any]:
        instance: Dict[str, Any] = {"prompt": prompt}
        if image_bytes:
            instance["image"] = {"bytesBase64Encoded": image_bytes, "mimeType": image_mime_type}
        # sempre um único vídeo por job
        return {"instances": [instance], "parameters": {"sampleCount": 1}}

    async def _send(self, method: str, url: str, api_key: str, payload: Optional[dict] = None) -> Dict[str, Any]:
        try:
            async with self._client(api_key) as client:
                resp = await client.request(method, url, json=payload)
                if resp.status_code >= 400:
                    body_text = resp.text
                    logger.error("Veo %s erro %s: %s", method, resp.status_code, body_text)
                    raise classify(body_text or f"{resp.status_code} {resp.reason_phrase}")
                data = resp.json()
        except httpx.HTTPError as e:
            raise GenericServiceError(f"Veo request failed: {e}") from e
        except ValueError as e:
            raise GenericServiceError("Veo returned a non-JSON response") from e

        if not isinstance(data, dict) or not data.get("name"):
            raise GenericServiceError(f"Veo: 'name' ausente na operação: {data}")
        return data

    async def submit(
        self,
        *,
        prompt: Optional[str],
        image_bytes: Optional[str] = None,
        image_mime_type: str = "image/png",
    ) -> Dict[str, Any]:
        """
        Dispara a geração e devolve o envelope da operação, sem interpretá-lo.
        Cada chamada cria um job novo (não é idempotente).
        """
        if not prompt or not prompt.strip():
            raise ValidationError("Prompt is required")
        api_key = require_api_key(self.cfg)

        url = f"{self.base_url}/models/{self.model}:predictLongRunning"
        operation = await self._send("POST", url, api_key, self._build_payload(prompt, image_bytes, image_mime_type))
        logger.info("Veo operação iniciada: %s", operation["name"])
        return operation

    async def submit_upload(self, *, prompt: Optional[str], data: bytes, content_type: Optional[str]) -> Dict[str, Any]:
        encoded = base64.b64encode(data).decode("utf-8") if data else None
        return await self.submit(prompt=prompt, image_bytes=encoded, image_mime_type=content_type or "image/png")

    async def fetch_status(self, operation: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        if not isinstance(operation, dict) or not operation.get("name"):
            raise ValidationError("Operation is required")
        api_key = require_api_key(self.cfg)

        name = str(operation["name"])
        if not _OPERATION_NAME.match(name) or ".." in name:
            raise ValidationError("Invalid operation name")
        updated = await self._send("GET", f"{self.base_url}/{name}", api_key)
        logger.info("Veo operação %s done=%s", name, bool(updated.get("done")))
        return updated
