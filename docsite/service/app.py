"""FastAPI application serving the generated documentation."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Callable, Optional

import uvicorn
from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel

from ..logging import get_logger


class HealthResponse(BaseModel):
    status: str
    output: str


def create_app(output_dir: Path) -> FastAPI:
    """Create the FastAPI application serving ``output_dir``."""

    app = FastAPI(title="docsite", version="1.0.0")

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok", output=str(output_dir))

    # Mounted last so the API routes above take precedence.
    app.mount("/", StaticFiles(directory=str(output_dir), html=True, check_dir=False), name="site")
    return app


class DevServer:
    """Runs the documentation app with uvicorn inside the current event loop."""

    def __init__(
        self,
        output_dir: Path,
        host: str = "127.0.0.1",
        port: int = 8080,
        *,
        server_factory: Callable[[uvicorn.Config], uvicorn.Server] = uvicorn.Server,
    ) -> None:
        self.output_dir = output_dir
        self.host = host
        self.port = port
        self._server_factory = server_factory
        self._server: Optional[uvicorn.Server] = None
        self._task: Optional[asyncio.Task] = None
        self.logger = get_logger("service")

    @property
    def started(self) -> bool:
        return self._task is not None

    @property
    def url(self) -> str:
        return f"http://{self.host}:{self.port}"

    async def start(self) -> None:
        if self._task is not None:
            return
        config = uvicorn.Config(
            create_app(self.output_dir),
            host=self.host,
            port=self.port,
            log_level="warning",
        )
        self._server = self._server_factory(config)
        self._task = asyncio.get_running_loop().create_task(self._server.serve())
        self.logger.info("Serving documentation from %s at %s", self.output_dir, self.url)

    async def wait(self) -> None:
        if self._task is not None:
            await self._task

    async def stop(self) -> None:
        if self._server is None or self._task is None:
            return
        self._server.should_exit = True
        await self._task
        self._task = None
        self._server = None


__all__ = ["DevServer", "HealthResponse", "create_app"]
