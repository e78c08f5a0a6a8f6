import hashlib
import logging
import secrets

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from .database import get_db
from .models import Business

logger = logging.getLogger(__name__)

security = HTTPBearer()

API_KEY_PREFIX = "pq_"


def generate_api_key() -> str:
    """Generate a new dashboard API key (show once, store only the hash)"""
    return f"{API_KEY_PREFIX}{secrets.token_urlsafe(32)}"


def hash_api_key(api_key: str) -> str:
    return hashlib.sha256(api_key.encode()).hexdigest()


def create_business_with_api_key(db: Session, name: str) -> tuple[Business, str]:
    """Register a business and return it with its raw API key"""
    api_key = generate_api_key()
    business = Business(name=name, api_key_hash=hash_api_key(api_key))
    db.add(business)
    db.commit()
    db.refresh(business)
    logger.info(f"✅ Business {business.id} registered")
    return business, api_key


async def get_current_business(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> Business:
    """Resolve the calling business from its Bearer API key"""
    token = (credentials.credentials or "").strip()
    if not token.startswith(API_KEY_PREFIX):
        logger.warning("❌ Rejected API key with unexpected format")
        raise HTTPException(status_code=401, detail="Invalid API key")

    business = db.query(Business).filter(Business.api_key_hash == hash_api_key(token)).first()
    if not business:
        logger.warning("❌ Unknown API key presented")
        raise HTTPException(status_code=401, detail="Invalid API key")

    logger.debug(f"✅ Business authenticated: {business.id}")
    return business
