"""FastAPI dependencies."""

from fastapi import Request

from gatesend.services.factory import GatewayServices


def get_services(request: Request) -> GatewayServices:
    """Service graph created by the application lifespan."""
    return request.app.state.services
