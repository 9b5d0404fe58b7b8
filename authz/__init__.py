"""Multi-tenant authorization and module provisioning service."""

__version__ = "0.1.0"
