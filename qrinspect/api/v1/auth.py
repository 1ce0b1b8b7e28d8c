# qrinspect/api/v1/auth.py
from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException, status, Request
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session

from qrinspect.core.auth import authenticate_user, get_db, get_current_user, get_user_by_email
from qrinspect.core.clock import utcnow
from qrinspect.core.security import create_access_token, ACCESS_TOKEN_EXPIRE_MINUTES
from qrinspect.models.user import User
from qrinspect.schemas.user import ProfileOut, ProfileUpdate, UserOut
from qrinspect.services.audit import audit_commit, audit_log, ip_from_request

router = APIRouter()


@router.post("/login")
def login(
    request: Request,
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db),
):
    email = (form_data.username or "").strip()
    user = authenticate_user(db, email, form_data.password)

    if not user:
        known = get_user_by_email(db, email)
        try:
            audit_log(
                db,
                organization_id=getattr(known, "organization_id", None),
                user_id=getattr(known, "id", None),
                action="LOGIN_FAILED",
                entity_type="auth",
                entity_id=None,
                meta={"email": email},
                ip=ip_from_request(request),
            )
            db.commit()
        except Exception:
            db.rollback()
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        user.last_login_at = utcnow()
        audit_log(
            db,
            organization_id=user.organization_id,
            user_id=user.id,
            action="LOGIN_SUCCESS",
            entity_type="auth",
            entity_id=user.id,
            meta={"email": user.email, "method": "password"},
            ip=ip_from_request(request),
        )
        db.commit()
    except Exception:
        db.rollback()

    access_token = create_access_token(
        data={"sub": user.email, "role": user.role},
        expires_delta=timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES),
    )
    return {"access_token": access_token, "token_type": "bearer"}


@router.get("/me", response_model=UserOut)
def me(current_user: User = Depends(get_current_user)):
    return current_user


@router.patch("/me", response_model=ProfileOut)
def update_me(
    payload: ProfileUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Update the caller's own name and email. 409 if the email belongs to someone else."""
    email = payload.email.strip().lower()
    other = get_user_by_email(db, email)
    if other is not None and other.id != current_user.id:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email already registered")

    email_changed = email != (current_user.email or "").lower()
    changed = []
    if payload.name != current_user.name:
        changed.append("name")
    if email != current_user.email:
        changed.append("email")
    current_user.name = payload.name
    current_user.email = email
    db.commit()
    db.refresh(current_user)

    audit_commit(
        db,
        request,
        current_user,
        action="PROFILE_UPDATED",
        entity_type="user",
        entity_id=current_user.id,
        meta={"fields": changed},
    )

    out = ProfileOut.model_validate(current_user)
    if email_changed:
        out.access_token = create_access_token(
            data={"sub": current_user.email, "role": current_user.role},
            expires_delta=timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES),
        )
        out.token_type = "bearer"
    return out
