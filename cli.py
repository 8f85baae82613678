"""
CLI para gerar vídeos pelo backend.

Uso:
    veo-studio "um gato surfando" --image ref.png --out videos/

Fluxo: submete o job, consulta o status a cada POLL_INTERVAL_S segundos e
salva cada vídeo como videoN.mp4 no diretório de saída. Ctrl+C interrompe o
acompanhamento sem novas chamadas de rede.
"""
import argparse
import asyncio
import mimetypes
import sys

from core.config import settings
from schemas.generation import GenerationRequest
from services.errors import ConfigurationError, QuotaExceededError, ValidationError, VideoGenError
from services.generation_client import GenerationClient, save_artifact


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="veo-studio", description="Gera vídeos com Veo através do backend.")
    parser.add_argument("prompt", help="Texto descrevendo o vídeo")
    parser.add_argument("--image", default=None, help="Imagem de referência opcional")
    parser.add_argument("--out", default=".", help="Diretório onde salvar os vídeos")
    parser.add_argument("--api-base", default=settings.API_BASE_URL, help="URL base do backend")
    parser.add_argument("--interval", type=float, default=settings.POLL_INTERVAL_S, help="Intervalo entre consultas (s)")
    parser.add_argument("--max-attempts", type=int, default=settings.POLL_MAX_ATTEMPTS)
    return parser


def friendly_message(exc: VideoGenError) -> str:
    if isinstance(exc, QuotaExceededError):
        return f"Quota exceeded, try again later. ({exc.message})"
    if isinstance(exc, ConfigurationError):
        return f"Server misconfigured: {exc.message}"
    return exc.message


async def run(args: argparse.Namespace) -> int:
    image_bytes = None
    mime_type = "image/png"
    if args.image:
        with open(args.image, "rb") as fh:
            image_bytes = fh.read()
        mime_type = mimetypes.guess_type(args.image)[0] or mime_type

    request = GenerationRequest(prompt=args.prompt, image_bytes=image_bytes, image_mime_type=mime_type)
    client = GenerationClient(args.api_base, interval_s=args.interval, max_attempts=args.max_attempts)

    print("Initializing...")
    try:
        result = await client.generate(request)
    except VideoGenError as exc:
        print(f"Error: {friendly_message(exc)}", file=sys.stderr)
        return 2 if isinstance(exc, ValidationError) else 1

    for artifact in result.artifacts:
        print(f"Saved {save_artifact(artifact, args.out)}")
    for index, exc in sorted(result.failures.items()):
        print(f"Error: video{index}: {friendly_message(exc)}", file=sys.stderr)
    print("Done.")
    return 1 if result.failures else 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        return asyncio.run(run(args))
    except KeyboardInterrupt:
        print("\nCancelled.", file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(main())
