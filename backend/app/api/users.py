import logging
from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from app.database import get_db
from app.schemas.user import UserCreate, UserResponse, UserRegisterResponse
from app.crud import user as crud_user
from app.models.user import User
from app.api.auth import get_current_user
from app.utils.errors import validate_required, validate_email, validate_password

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["users"])


# POST - Register a new account
@router.post("/register", response_model=UserRegisterResponse, status_code=status.HTTP_201_CREATED)
def register(user: UserCreate, db: Session = Depends(get_db)):
    validate_required(user.name, "Name")
    validate_required(user.email, "Email")
    validate_required(user.password, "Password")
    validate_email(user.email)
    validate_password(user.password)

    # Raises ConflictError when the email is taken
    new_user = crud_user.create_user(db=db, user=user)

    return {"message": "User created successfully", "user_id": new_user.id}


# GET - Get current user
@router.get("/me", response_model=UserResponse)
def read_me(current_user: User = Depends(get_current_user)):
    return current_user


# DELETE - Delete current user and their chat history
@router.delete("/me")
def delete_me(
    response: Response,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    user_id = current_user.id
    crud_user.delete_user(db, user_id=user_id)
    response.delete_cookie("access_token")
    logger.info(f"[Users API] Deleted account {user_id}")
    return {"message": "User deleted successfully"}
