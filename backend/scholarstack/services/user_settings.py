"""
Single-user credential storage.

The deployment has one implicit user; projects and the API key hang off it.
"""
import logging
from sqlalchemy.orm import Session
from typing import Optional, Tuple

from scholarstack.core.config import settings
from scholarstack.core.errors import ConfigurationError
from scholarstack.models import sql_models as models
from scholarstack.services.llm_clients import Credential, Provider

logger = logging.getLogger(__name__)


def find_user(db: Session, email: Optional[str] = None) -> Optional[models.User]:
    return db.query(models.User).filter(
        models.User.email == (email or settings.DEFAULT_USER_EMAIL)
    ).first()


def get_or_create_user(db: Session, email: Optional[str] = None) -> models.User:
    user = find_user(db, email)
    if not user:
        user = models.User(email=email or settings.DEFAULT_USER_EMAIL)
        db.add(user)
        db.commit()
        db.refresh(user)
    return user


def set_credential(
    db: Session,
    api_key: str,
    provider: Optional[Provider] = None,
    ai_model: Optional[str] = None,
    email: Optional[str] = None,
) -> models.User:
    user = get_or_create_user(db, email)
    api_key = api_key.strip()
    # The provider is decided here, once, and stored with the key
    resolved = provider or Provider.infer_from_key(api_key)

    user.api_key = api_key
    user.llm_provider = resolved.value
    user.ai_model = ai_model or None
    db.commit()
    db.refresh(user)
    logger.info(f"Stored {resolved.value} credential for {user.email}")
    return user


def clear_credential(db: Session, email: Optional[str] = None) -> models.User:
    user = get_or_create_user(db, email)
    user.api_key = None
    user.llm_provider = None
    user.ai_model = None
    db.commit()
    db.refresh(user)
    return user


def credential_for_user(user: Optional[models.User]) -> Optional[Credential]:
    if user is None or not user.api_key or not user.llm_provider:
        return None
    return Credential(provider=Provider(user.llm_provider), api_key=user.api_key)


def require_credential(user: Optional[models.User]) -> Tuple[Credential, Optional[str]]:
    """
    Returns (credential, model override) or raises ConfigurationError.
    """
    credential = credential_for_user(user)
    if credential is None:
        raise ConfigurationError("Please set your API key in settings")
    return credential, user.ai_model
