"""FastAPI application entry point for the desktop shell's local bridge."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from webpdesk.api.routes import router
from webpdesk.config import CORS_ORIGINS, logger as config_logger
from webpdesk.conversion.service import get_conversion_service

logging.getLogger("uvicorn").setLevel(logging.INFO)


@asynccontextmanager
async def lifespan(app: FastAPI):
    svc = get_conversion_service()
    svc.ensure_dirs()
    config_logger.info("WebP converter bridge started (output: %s)", svc.output_dir)
    yield
    config_logger.info("WebP converter bridge shutting down")


app = FastAPI(
    title="WebP Converter Bridge",
    description="Convert dropped images to WebP and list, reveal or delete the results.",
    version="1.0.0",
    lifespan=lifespan,
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS if CORS_ORIGINS else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(router)


def run() -> None:
    import uvicorn
    from webpdesk.config import HOST, PORT
    uvicorn.run("webpdesk.main:app", host=HOST, port=PORT)


if __name__ == "__main__":
    run()
