"""Base seeder class."""

from abc import ABC, abstractmethod

from authz.repositories.interfaces import Repositories


class Seeder(ABC):
    """Base class for catalog seeders.

    Seeders are written against the repository interfaces and must be
    idempotent: rows that already exist are left untouched.
    """

    @abstractmethod
    def run(self, repos: Repositories) -> int:
        """Run the seeder.

        Args:
            repos: Repository bundle

        Returns:
            Number of rows created
        """

    def get_name(self) -> str:
        """Get seeder class name.

        Returns:
            Seeder class name
        """
        return self.__class__.__name__
