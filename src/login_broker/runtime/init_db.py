from loguru import logger

from src.login_broker.core.services.database import DbSessionService


def init_db(db_service: DbSessionService | None = None) -> DbSessionService:
    """Create the identity store tables."""
    db_service = db_service or DbSessionService()
    db_service.create_tables()
    logger.info("Database tables created")
    return db_service


if __name__ == "__main__":
    init_db()
