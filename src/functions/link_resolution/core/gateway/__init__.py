"""Resolver gateway: one result contract over native and HTTP resolvers."""

from .limits import ProviderLimiter
from .resolver_gateway import GatewayResult, NativeResolver, Provider, ResolverGateway, normalise_response

__all__ = [
    "GatewayResult",
    "NativeResolver",
    "Provider",
    "ProviderLimiter",
    "ResolverGateway",
    "normalise_response",
]
