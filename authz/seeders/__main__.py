"""Run the default seeders: ``python -m authz.seeders``."""

from authz.core.db.session import SessionLocal
from authz.repositories import build_repositories
from authz.seeders import run_seeders


def main() -> None:
    db = SessionLocal()
    try:
        results = run_seeders(build_repositories(db))
    finally:
        db.close()
    for name, created in results.items():
        print(f"✅ {name}: {created} created")


if __name__ == "__main__":
    main()
