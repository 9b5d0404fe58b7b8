"""Seeder infrastructure."""

from authz.core.seeders.base import Seeder

__all__ = ["Seeder"]
