from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.core.security import (
    create_access_token,
    get_current_user,
    oauth2_scheme,
    refresh_access_token,
    verify_password,
)
from app.db.session import get_db
from app.logging_config import audit_log
from app.models.user import User
from app.schemas.user import LoginRequest, Token

router = APIRouter()


@router.post("/login", response_model=Token)
def login(credentials: LoginRequest, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.email == credentials.email).first()
    if not user or not verify_password(credentials.password, user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )
    if not user.is_active:
        raise HTTPException(status_code=400, detail="Account is inactive")
    token = create_access_token({"sub": str(user.id)})
    audit_log("USER_LOGIN", user_id=user.id, company_id=user.company_id)
    return {"access_token": token, "token_type": "bearer"}


@router.get("/refresh", response_model=Token)
def refresh(token: str = Depends(oauth2_scheme), user: User = Depends(get_current_user)):
    new_token = refresh_access_token(token)
    return {"access_token": new_token, "token_type": "bearer"}
