"""HTTP API for tenantvault."""

from tenantvault.api.app import create_app

__all__ = ["create_app"]
