from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from lus_emi.schemas.user import LoginRequest, TokenResponse, UserCreate, UserRead
from lus_emi.models.user import Role, User
from lus_emi.core.logging import get_logger
from lus_emi.core.security import hash_password, verify_password, create_access_token
from lus_emi.deps import get_db, get_current_user

logger = get_logger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])


@router.post("/register", response_model=UserRead, status_code=status.HTTP_201_CREATED)
def register(user_in: UserCreate, db: Session = Depends(get_db)):
    existing_user = db.query(User).filter(User.email == user_in.email.lower()).first()
    if existing_user:
        raise HTTPException(status_code=400, detail="Email already registered")

    # self-registration is for merchants only; staff accounts come from an admin
    user = User(
        email=user_in.email.lower(),
        hashed_password=hash_password(user_in.password),
        first_name=user_in.first_name,
        last_name=user_in.last_name,
        role=Role.MERCHANT,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("user_registered", user_id=str(user.id))
    return user


@router.post("/login", response_model=TokenResponse)
def login(user_in: LoginRequest, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.email == user_in.email.lower()).first()
    if not user or not verify_password(user_in.password, user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User account is disabled")

    token = create_access_token({"sub": str(user.id), "role": user.role.value})
    logger.info("user_logged_in", user_id=str(user.id), role=user.role.value)
    return {"access_token": token, "token_type": "bearer"}


@router.get("/user", response_model=UserRead)
def me(current_user: User = Depends(get_current_user)):
    return current_user


@router.post("/logout")
def logout():
    return {"message": "Logout successful. Remove token on client side."}
