"""ASGI entrypoint for the spa operations API."""

from spa_operations.api.app import create_app
from spa_operations.containers import build_container

app = create_app(build_container())
