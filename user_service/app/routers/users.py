import logging
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.database import get_db
from ..models.user import User
from ..schemas.user import UserCreate, UserOut

logger = logging.getLogger(__name__)

router = APIRouter()

INTERNAL_ERROR = {"success": False, "message": "Internal server error"}


def _serialize(user: User) -> dict:
    return UserOut.model_validate(user).model_dump(mode="json", by_alias=True)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_user(user_in: UserCreate, db: Session = Depends(get_db)):
    """Create a new user"""
    if not user_in.name or not user_in.name.strip() or not user_in.email:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"success": False, "message": "Name and email are required"}
        )

    try:
        existing = db.query(User).filter(User.email == user_in.email).first()
        if existing:
            return JSONResponse(
                status_code=status.HTTP_400_BAD_REQUEST,
                content={"success": False, "message": "Email already registered"}
            )

        user = User(name=user_in.name, email=user_in.email)
        db.add(user)
        db.commit()
        db.refresh(user)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Error creating user: {e}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=INTERNAL_ERROR
        )

    logger.info(f"Created user {user.id}")
    return JSONResponse(
        status_code=status.HTTP_201_CREATED,
        content={
            "success": True,
            "message": "User added successfully",
            "user": _serialize(user),
        }
    )


@router.get("")
async def get_users(db: Session = Depends(get_db)):
    """Fetch all users; an empty store is reported as 404"""
    try:
        users = db.query(User).order_by(User.id).all()
    except SQLAlchemyError as e:
        logger.error(f"Error fetching users: {e}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=INTERNAL_ERROR
        )

    if not users:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"success": False, "message": "No users found"}
        )

    return {
        "success": True,
        "message": "Users fetched successfully",
        "count": len(users),
        "data": [_serialize(user) for user in users],
    }
