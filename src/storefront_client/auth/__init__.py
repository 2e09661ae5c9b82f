"""Credential persistence for storefront-client.

This package provides :class:`CredentialStore`, the durable holder of the
bearer token attached to every outbound request.
"""

from storefront_client.auth.credential_store import CredentialStore

__all__ = ["CredentialStore"]
