import logging
import sys

from core.config import settings

_MASK = "***"


class CredentialFilter(logging.Filter):
    """Mascara a API key do servidor em qualquer registro de log."""

    def filter(self, record: logging.LogRecord) -> bool:
        secret = settings.API_KEY
        if not secret:
            return True
        message = record.getMessage()
        if secret in message:
            record.msg = message.replace(secret, _MASK)
            record.args = None
        return True


def _build_logger() -> logging.Logger:
    log = logging.getLogger(settings.APP_NAME)
    if not log.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s"))
        log.addHandler(handler)
    log.addFilter(CredentialFilter())
    # httpx registra as URLs das requisições (o download leva a key na query)
    for name in ("httpx", "httpcore"):
        logging.getLogger(name).addFilter(CredentialFilter())
    log.setLevel(settings.LOG_LEVEL.upper())
    return log


logger = _build_logger()
