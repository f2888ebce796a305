"""Base exceptions for online tester services."""


class ServiceError(Exception):
    """Base class for all service-layer errors."""


class ServiceNotConfigured(ServiceError):
    """Raised when a service setting is missing or invalid."""


class EngineOverloaded(ServiceError):
    """Raised when the rendering engine cannot accept more work right now."""
