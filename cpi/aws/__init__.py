"""AWS (EC2) provider client."""

from .provider import Provider

__all__ = ["Provider"]
