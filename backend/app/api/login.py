from fastapi import APIRouter, Depends, Response
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session

from config import ACCESS_TOKEN_EXPIRE_MINUTES, COOKIE_SECURE
from app.database import get_db
from app.crud import user as crud_user
from app.utils.utils import verify_password, create_access_token
from app.utils.errors import AuthenticationError
from app.schemas.user import UserLogin, TokenResponse

router = APIRouter(prefix="/auth", tags=["login"])


def _issue_session(response: Response, email: str, password: str, db: Session) -> dict:
    user = crud_user.get_user_by_email(db, email=email)
    if not user or not verify_password(password, user.password):
        raise AuthenticationError("Incorrect email or password")

    access_token = create_access_token(data={"sub": user.email})

    # Set cookie for browser-based access
    response.set_cookie(
        key="access_token",
        value=access_token,
        httponly=True,
        max_age=ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        expires=ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        samesite="lax",
        secure=COOKIE_SECURE,
    )

    return {"access_token": access_token, "token_type": "bearer", "user_id": user.id}


@router.post("/login", response_model=TokenResponse)
def login_for_access_token(
    response: Response,
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db)
):
    """
    OAuth2 compatible token login, get an access token for future requests.
    """
    return _issue_session(response, form_data.username, form_data.password, db)


@router.post("/login/json", response_model=TokenResponse)
def login_json(
    response: Response,
    login_data: UserLogin,
    db: Session = Depends(get_db)
):
    """
    JSON-based login for API clients that prefer JSON body over Form Data.
    """
    return _issue_session(response, login_data.email, login_data.password, db)


@router.post("/logout")
def logout(response: Response):
    """
    Logout the user by clearing the access_token cookie.
    """
    response.delete_cookie("access_token")
    return {"message": "Logged out successfully"}
