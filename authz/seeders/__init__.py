"""Default catalog seeders."""

from authz.core.seeders.base import Seeder
from authz.repositories.interfaces import Repositories
from authz.seeders.module_catalog_seeder import ModuleCatalogSeeder
from authz.seeders.role_template_seeder import RoleTemplateSeeder

DEFAULT_SEEDERS: list[type[Seeder]] = [ModuleCatalogSeeder, RoleTemplateSeeder]


def run_seeders(repos: Repositories) -> dict[str, int]:
    """Run every default seeder in order and return rows created per seeder."""
    results = {}
    for seeder_class in DEFAULT_SEEDERS:
        seeder = seeder_class()
        results[seeder.get_name()] = seeder.run(repos)
    return results


__all__ = ["DEFAULT_SEEDERS", "ModuleCatalogSeeder", "RoleTemplateSeeder", "run_seeders"]
