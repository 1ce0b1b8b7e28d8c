# qrinspect/crud/user.py
from typing import List, Optional

from sqlalchemy.orm import Session

from qrinspect.core.security import hash_password
from qrinspect.models.user import User
from qrinspect.schemas.user import UserCreate, UserUpdate


def get_user(db: Session, user_id: int) -> Optional[User]:
    return db.get(User, user_id)


def list_users(
    db: Session,
    organization_id: Optional[int] = None,
    area_id: Optional[int] = None,
    role: Optional[str] = None,
) -> List[User]:
    q = db.query(User)
    if organization_id is not None:
        q = q.filter(User.organization_id == organization_id)
    if area_id is not None:
        q = q.filter(User.area_id == area_id)
    if role:
        q = q.filter(User.role == role)
    return q.order_by(User.id.asc()).all()


def create_user(db: Session, payload: UserCreate) -> User:
    obj = User(
        email=payload.email.lower(),
        hashed_password=hash_password(payload.password),
        name=payload.name,
        role=payload.role,
        organization_id=payload.organization_id,
        area_id=payload.area_id,
        department_id=payload.department_id,
    )
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj


def update_user(db: Session, obj: User, payload: UserUpdate) -> User:
    data = payload.model_dump(exclude_unset=True)
    password = data.pop("password", None)
    if password:
        obj.hashed_password = hash_password(password)
    if data.get("email"):
        data["email"] = data["email"].lower()
    for k, v in data.items():
        setattr(obj, k, v)
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj


def delete_user(db: Session, obj: User) -> None:
    db.delete(obj)
    db.commit()
