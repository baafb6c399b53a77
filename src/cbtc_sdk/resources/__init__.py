"""
Resources for the CBTC SDK.

One resource per remote service: identity provider, registry and ledger.
"""
from .base import AsyncBaseResource
from .identity import IdentityResource
from .ledger import LedgerResource, interface_filter, template_filter
from .registry import RegistryResource

__all__ = [
    "AsyncBaseResource",
    "IdentityResource",
    "LedgerResource",
    "RegistryResource",
    "interface_filter",
    "template_filter",
]
