"""ASGI entrypoint: FastAPI routers plus the socket.io namespaces.

Run with ``uvicorn linkedup.main:socket_app``.
"""

from __future__ import annotations

from contextlib import asynccontextmanager

import socketio
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from linkedup.api import chat, discovery, links, ops, profile
from linkedup.api.errors import install_error_handlers
from linkedup.domain.chat.sockets import ChatNamespace
from linkedup.domain.discovery.sockets import DiscoveryNamespace
from linkedup.domain.social.sockets import SocialNamespace, set_namespace
from linkedup.infra.store import close_store, init_store
from linkedup.obs import init as obs_init
from linkedup.obs import logging as obs_logging
from linkedup.settings import settings


@asynccontextmanager
async def lifespan(app: FastAPI):
	init_store()
	obs_logging.get_logger().info(
		"startup",
		extra={"environment": settings.environment, "store_backend": settings.store_backend},
	)
	try:
		yield
	finally:
		await close_store()


app = FastAPI(title="LinkedUp Core", lifespan=lifespan)
install_error_handlers(app)

allow_origins = list(getattr(settings, "cors_allow_origins", []))
if not allow_origins:
	allow_origins = ["http://localhost:3000"] if settings.is_dev() else []

# Starlette disallows wildcard '*' with allow_credentials=True. Replace '*' with explicit origins.
if "*" in allow_origins:
	allow_origins = ["http://localhost:3000", "http://127.0.0.1:3000"] if settings.is_dev() else []

app.add_middleware(
	CORSMiddleware,
	allow_origins=allow_origins,
	allow_credentials=True,
	allow_methods=["*"],
	allow_headers=["*"],
)

# Use the same allowed origins for Socket.IO as for the REST API
sio = socketio.AsyncServer(async_mode="asgi", cors_allowed_origins=allow_origins)
social_namespace = SocialNamespace()
sio.register_namespace(social_namespace)
set_namespace(social_namespace)
sio.register_namespace(DiscoveryNamespace())
sio.register_namespace(ChatNamespace())
socket_app = socketio.ASGIApp(sio, other_asgi_app=app)
obs_init(app)

app.include_router(ops.router)
app.include_router(profile.router)
app.include_router(links.router)
app.include_router(discovery.router)
app.include_router(chat.router)
