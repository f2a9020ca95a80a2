"""Privileged provisioning functions service."""

from treinup.functions.app import create_app

__all__ = ["create_app"]
