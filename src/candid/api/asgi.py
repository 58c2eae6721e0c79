"""ASGI entrypoint for the Candid API."""

from candid.api.app import create_app
from candid.containers import build_container

app = create_app(build_container())
