import logging

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from backend.auth import jwt_handler
from backend.auth.dependencies import CurrentUser, get_current_user
from backend.auth.passwords import hash_password, verify_password
from backend.core import config
from backend.database import database_error, get_db, is_unique_violation
from backend.models.user import ROLE_ADMIN, ROLE_STUDENT, ROLE_TEACHER, ROLES, User

router = APIRouter(tags=['auth'])

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = 'Invalid credentials.'


def _require_text(value: str, field_name: str) -> str:
    normalized = value.strip()
    if not normalized:
        raise ValueError(f'{field_name} is required.')
    return normalized


def _normalize_email(value: str) -> str:
    return _require_text(value, 'email').lower()


def _require_password(value: str) -> str:
    if not value.strip():
        raise ValueError('password is required.')
    return value


class RegisterRequest(BaseModel):
    id: str
    name: str
    email: str
    password: str
    role: str
    roll_number: str | None = None
    enrollment_number: str | None = None

    @field_validator('id', mode='before')
    @classmethod
    def coerce_id(cls, value):
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator('id', 'name')
    @classmethod
    def validate_required(cls, value: str, info) -> str:
        return _require_text(value, info.field_name)

    @field_validator('email')
    @classmethod
    def validate_email(cls, value: str) -> str:
        return _normalize_email(value)

    @field_validator('password')
    @classmethod
    def validate_password(cls, value: str) -> str:
        return _require_password(value)

    @field_validator('role')
    @classmethod
    def validate_role(cls, value: str) -> str:
        normalized = _require_text(value, 'role').lower()
        if normalized not in ROLES:
            raise ValueError(f"role must be one of: {', '.join(ROLES)}.")
        return normalized

    @field_validator('roll_number', 'enrollment_number')
    @classmethod
    def blank_to_none(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip() or None


class LoginRequest(BaseModel):
    email: str
    password: str

    @field_validator('email')
    @classmethod
    def validate_email(cls, value: str) -> str:
        return _normalize_email(value)

    @field_validator('password')
    @classmethod
    def validate_password(cls, value: str) -> str:
        return _require_password(value)


class UserClaims(BaseModel):
    id: str
    role: str
    name: str | None = None


class LoginResponse(BaseModel):
    token: str
    user: UserClaims


@router.post('/register', status_code=status.HTTP_201_CREATED)
def register(data: RegisterRequest, db: Session = Depends(get_db)):
    if data.role == ROLE_ADMIN and not config.ALLOW_ADMIN_REGISTRATION:
        logger.warning('Rejected public admin registration for %s', data.email)
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail='Admin registration is disabled.')

    is_student = data.role == ROLE_STUDENT
    user = User(
        id=data.id,
        name=data.name,
        email=data.email,
        password_hash=hash_password(data.password),
        role=data.role,
        roll_number=data.roll_number if is_student else None,
        enrollment_number=data.enrollment_number if is_student else None,
    )

    try:
        db.add(user)
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        if is_unique_violation(exc):
            logger.info('Registration rejected: id or email already taken (%s)', data.email)
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail='Email or ID already exists.') from exc
        logger.exception('Registration failed for %s', data.email)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail='Server error during registration.',
        ) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Registration failed for %s', data.email)
        raise database_error(exc, 'Server error during registration.') from exc

    logger.info('Registered %s account %s', data.role, data.id)
    return {'message': 'User registered successfully!'}


def authenticate(db: Session, email: str, password: str, expected_role: str) -> User:
    user = db.query(User).filter(User.email == email).first()

    if user is None:
        logger.warning('Failed %s login: unknown email', expected_role)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=INVALID_CREDENTIALS)

    if user.role != expected_role:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Access denied. Please use the '{user.role}' login portal.",
        )

    if not verify_password(password, user.password_hash):
        logger.warning('Failed %s login: wrong password for %s', expected_role, user.id)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=INVALID_CREDENTIALS)

    return user


def login_as(data: LoginRequest, db: Session, expected_role: str) -> LoginResponse:
    try:
        user = authenticate(db, data.email, data.password, expected_role)
    except SQLAlchemyError as exc:
        logger.exception('Login error for %s', expected_role)
        raise database_error(exc, 'Server error during login.') from exc

    claims = UserClaims(id=user.id, role=user.role, name=user.name)
    try:
        token = jwt_handler.create_access_token(claims.model_dump())
    except jwt_handler.SigningKeyMissingError as exc:
        logger.error('Cannot issue tokens: JWT_SECRET_KEY is not configured')
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail='Server configuration error.',
        ) from exc

    logger.info('%s %s logged in', expected_role.capitalize(), user.id)
    return LoginResponse(token=token, user=claims)


@router.post('/teacher/login', response_model=LoginResponse)
def teacher_login(data: LoginRequest, db: Session = Depends(get_db)):
    return login_as(data, db, ROLE_TEACHER)


@router.post('/student/login', response_model=LoginResponse)
def student_login(data: LoginRequest, db: Session = Depends(get_db)):
    return login_as(data, db, ROLE_STUDENT)


@router.post('/admin/login', response_model=LoginResponse)
def admin_login(data: LoginRequest, db: Session = Depends(get_db)):
    return login_as(data, db, ROLE_ADMIN)


@router.get('/me', response_model=CurrentUser)
def me(current_user: CurrentUser = Depends(get_current_user)):
    return current_user
