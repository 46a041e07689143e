"""FastAPI dependencies exposing the service container to routes."""

from fastapi import Request

from app.services.container import ServiceContainer


def get_container(request: Request) -> ServiceContainer:
    return request.app.state.container
