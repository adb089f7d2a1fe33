"""ASGI entrypoint for the food diary API."""

from food_diary.api.app import create_app
from food_diary.containers import build_container

app = create_app(build_container())
