import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from core.config import settings
from core.logs import logger
from routes.video_routes import router as video_router
from services.errors import VideoGenError

app = FastAPI(title=settings.APP_NAME)

# CORS (ajuste conforme seu front)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(video_router)


@app.exception_handler(VideoGenError)
async def video_error_handler(request: Request, exc: VideoGenError):
    if exc.status_code >= 500:
        logger.error("%s %s falhou (%s): %s", request.method, request.url.path, exc.kind, exc.message)
    return JSONResponse({"error": exc.message, "kind": exc.kind}, status_code=exc.status_code)


@app.get("/health")
async def health():
    return {"status": "ok"}

if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
