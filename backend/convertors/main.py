"""FastAPI application entry point."""
import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from convertors.api.routes import public_router, router
from convertors.config import CONVERTED_DIR, CORS_ORIGINS, SCRATCH_DIR, UPLOAD_DIR, build_adapter_config
from convertors.config import logger as config_logger
from convertors.conversion.adapters.toolcheck import check_tools

logging.getLogger("uvicorn").setLevel(logging.INFO)


@asynccontextmanager
async def lifespan(app: FastAPI):
    for directory in (UPLOAD_DIR, CONVERTED_DIR, SCRATCH_DIR):
        directory.mkdir(parents=True, exist_ok=True)
    results = await asyncio.to_thread(check_tools, build_adapter_config())
    missing = [r["name"] for r in results if r["status"] != "OK"]
    if missing:
        config_logger.warning("Unavailable tools: %s", ", ".join(missing))
    config_logger.info("Converter API started")
    yield
    config_logger.info("Converter API shutting down")


app = FastAPI(
    title="File Converter API",
    description="Convert images, documents, PDFs, audio, video, archives and e-books.",
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
app.include_router(public_router)


if __name__ == "__main__":
    import uvicorn
    from convertors.config import HOST, PORT
    uvicorn.run("convertors.main:app", host=HOST, port=PORT, reload=True)
