"""ASGI entrypoint for the Green Label view API."""

from green_label.api.app import create_app
from green_label.containers import build_container

app = create_app(build_container())
