from typing import Optional
from fastapi import Depends
from fastapi.security import APIKeyCookie, OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy.orm import Session
from app.database import get_db
from app.models.user import User
from app.utils.errors import AuthenticationError
from app.utils.utils import decode_access_token

cookie_scheme = APIKeyCookie(name="access_token", auto_error=False)
bearer_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


def _user_from_token(token: str, db: Session) -> Optional[User]:
    try:
        payload = decode_access_token(token)
    except JWTError:
        # This handles ExpiredSignatureError and other JWT issues
        return None

    email: str = payload.get("sub")
    if email is None:
        return None

    # Check if user still exists in DB
    return db.query(User).filter(User.email == email).first()


def get_current_user(
    cookie_token: Optional[str] = Depends(cookie_scheme),
    bearer_token: Optional[str] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    tokens = [token for token in (bearer_token, cookie_token) if token]
    if not tokens:
        raise AuthenticationError("Authentication required")

    # A stale cookie must not shadow a valid Authorization header
    for token in tokens:
        user = _user_from_token(token, db)
        if user is not None:
            return user

    raise AuthenticationError("Session expired. Please re-login.")
