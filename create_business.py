"""
Register a business and print its dashboard API key
Usage: python create_business.py "<business name>"
"""
import logging
import sys

from propertyquote import models  # noqa: F401
from propertyquote.auth import create_business_with_api_key
from propertyquote.database import Base, SessionLocal, engine

logging.basicConfig(level=logging.INFO, format='%(message)s')
logger = logging.getLogger(__name__)


def main(name: str):
    Base.metadata.create_all(bind=engine, checkfirst=True)

    db = SessionLocal()
    try:
        business, api_key = create_business_with_api_key(db, name)
    finally:
        db.close()

    logger.info(f"Business: {business.name} (id={business.id})")
    logger.info(f"API key (shown once, store it now): {api_key}")


if __name__ == "__main__":
    if len(sys.argv) < 2:
        logger.error('Usage: python create_business.py "<business name>"')
        sys.exit(1)

    try:
        main(sys.argv[1])
    except Exception as e:
        logger.error(f"❌ Failed to register business: {e}")
        sys.exit(1)
