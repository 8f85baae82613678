"""
Hierarquia de erros do pipeline de vídeo e o classificador de erros do serviço.

O classificador tenta primeiro ler o erro como JSON (o texto pode ser o corpo
de erro da API ou conter esse JSON no meio de uma string maior) e só recorre a
busca por substrings quando a leitura estruturada falha.
"""
import json
from typing import Any, Optional


class VideoGenError(Exception):
    kind = "generic"
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ConfigurationError(VideoGenError):
    kind = "configuration"


class ValidationError(VideoGenError):
    kind = "validation"
    status_code = 400


class QuotaExceededError(VideoGenError):
    kind = "quota"


class GenericServiceError(VideoGenError):
    kind = "generic"


class NoArtifactsError(GenericServiceError):
    pass


class PollTimeoutError(GenericServiceError):
    pass


class JobCancelledError(GenericServiceError):
    pass


class UpstreamDownloadError(GenericServiceError):
    def __init__(self, message: str, *, status_code: int, reason: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.reason = reason


_KINDS = {
    ConfigurationError.kind: ConfigurationError,
    ValidationError.kind: ValidationError,
    QuotaExceededError.kind: QuotaExceededError,
    GenericServiceError.kind: GenericServiceError,
}


def _parse_structured(text: str) -> Optional[dict[str, Any]]:
    candidates = [text]
    start, end = text.find("{"), text.rfind("}")
    if 0 <= start < end:
        # JSON embutido numa string maior (ex.: "got status 429: {...}")
        candidates.append(text[start:end + 1])
    for candidate in candidates:
        try:
            parsed = json.loads(candidate)
        except ValueError:
            continue
        if isinstance(parsed, dict):
            inner = parsed.get("error")
            return inner if isinstance(inner, dict) else parsed
    return None


def classify(error: Any) -> VideoGenError:
    """Converte qualquer erro (exceção ou texto) em um `VideoGenError` tipado."""
    if isinstance(error, VideoGenError) and type(error) is not GenericServiceError:
        return error

    text = error.message if isinstance(error, VideoGenError) else str(error)
    structured = _parse_structured(text)
    if structured is not None:
        message = structured.get("message")
        message = message if isinstance(message, str) and message else text
        code = structured.get("code")
        if code == 429 or str(code) == "429" or structured.get("status") == "RESOURCE_EXHAUSTED":
            return QuotaExceededError(message)
        return GenericServiceError(message)

    lowered = text.lower()
    if "quota" in lowered or "429" in lowered:
        return QuotaExceededError(text)
    return GenericServiceError(text)


def from_error_body(body: Any, *, fallback: str) -> VideoGenError:
    """Reconstrói o erro classificado a partir de um corpo `{error, kind}` do nosso backend."""
    if not isinstance(body, dict):
        return classify(fallback)
    text = body.get("error")
    text = text if isinstance(text, str) and text else fallback
    cls = _KINDS.get(body.get("kind"))
    if cls is not None:
        # o backend já classificou; não reaplicar a heurística de substrings
        return cls(text)
    return classify(text)
