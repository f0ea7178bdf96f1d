"""Deployment server adapters."""

from .http import HttpClient, HttpError, MockHttpClient, RealHttpClient
from .repository import ServerRepository

__all__ = [
    "HttpClient",
    "HttpError",
    "MockHttpClient",
    "RealHttpClient",
    "ServerRepository",
]
