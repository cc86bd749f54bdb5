"""FastAPI application entrypoint."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI

from wildnet import obs
from wildnet.api import ops, social
from wildnet.api.errors import install_error_handlers
from wildnet.infra import postgres
from wildnet.settings import settings


@asynccontextmanager
async def lifespan(_: FastAPI):
	try:
		yield
	finally:
		await social.shutdown()
		await postgres.close_pool()


def create_app() -> FastAPI:
	application = FastAPI(title="wildnet", lifespan=lifespan)
	obs.init(application)
	install_error_handlers(application)
	application.include_router(ops.router)
	application.include_router(social.router)
	return application


app = create_app()


def main() -> None:  # pragma: no cover - manual entrypoint
	import uvicorn

	uvicorn.run("wildnet.main:app", host="0.0.0.0", port=8000, reload=settings.is_dev())
