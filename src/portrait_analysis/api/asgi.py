"""ASGI entrypoint for the portrait analysis API."""

from portrait_analysis.api.app import create_app
from portrait_analysis.containers import build_container

app = create_app(build_container())
