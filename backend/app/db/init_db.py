from backend.app.core.logging import logger
from backend.app.db.base import Base
from backend.app.db.session import engine


def init_db() -> None:
    """Create the analytic store tables locally (dev and tests; production tables are managed upstream)."""
    Base.metadata.create_all(bind=engine)
    logger.info("Created %s tables", len(Base.metadata.tables))


if __name__ == "__main__":
    init_db()
