"""ASGI entrypoint for the craftify sync API."""

from craftify_sync.api.app import create_app
from craftify_sync.containers import build_container

app = create_app(build_container())
