from fastapi import Request

from checkout_api.config import Settings
from checkout_api.store import OrderStore
from checkout_api.stripe_service import StripeGateway


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request) -> OrderStore:
    return request.app.state.store


def get_gateway(request: Request) -> StripeGateway:
    return request.app.state.gateway
