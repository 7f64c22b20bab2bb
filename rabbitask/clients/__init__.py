from .api_client import ApiClient, BearerTokenAuth
from .api_gateway import AuthGateway, TaskGateway, UserGateway
from .http_gateway import HttpAuthGateway, HttpTaskGateway, HttpUserGateway

__all__ = [
    "ApiClient", "BearerTokenAuth",
    "AuthGateway", "TaskGateway", "UserGateway",
    "HttpAuthGateway", "HttpTaskGateway", "HttpUserGateway",
]
