"""ORM model package."""

from domestik.models.entities import Client, Service, User

__all__ = [
    "Client",
    "Service",
    "User",
]
