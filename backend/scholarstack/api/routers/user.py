from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import Optional

from scholarstack.core.config import settings
from scholarstack.core.database import get_db
from scholarstack.models import sql_models as models
from scholarstack import schemas
from scholarstack.services import user_settings

router = APIRouter()

def _status(user: models.User) -> schemas.ApiKeyStatus:
    # Never echo the key itself
    return schemas.ApiKeyStatus(
        email=user.email,
        has_api_key=bool(user.api_key),
        provider=user.llm_provider,
        ai_model=user.ai_model,
    )

@router.post("/api-key", response_model=schemas.ApiKeyStatus)
def set_api_key(key_in: schemas.ApiKeyUpdate, db: Session = Depends(get_db)):
    user = user_settings.set_credential(
        db,
        api_key=key_in.api_key,
        provider=key_in.provider,
        ai_model=key_in.ai_model,
        email=key_in.email,
    )
    return _status(user)

@router.get("/api-key/status", response_model=schemas.ApiKeyStatus)
def read_api_key_status(email: Optional[str] = None, db: Session = Depends(get_db)):
    user = user_settings.find_user(db, email)
    if user is None:
        return schemas.ApiKeyStatus(email=email or settings.DEFAULT_USER_EMAIL, has_api_key=False)
    return _status(user)

@router.delete("/api-key", response_model=schemas.ApiKeyStatus)
def delete_api_key(email: Optional[str] = None, db: Session = Depends(get_db)):
    return _status(user_settings.clear_credential(db, email))
