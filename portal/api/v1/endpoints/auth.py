from datetime import datetime, timezone
from fastapi import APIRouter, Depends, HTTPException, status, Request
from fastapi.security import OAuth2PasswordRequestForm
from redis.asyncio import Redis
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
import uuid

from portal.core.security import (
    hash_password,
    verify_password,
    create_access_token,
    create_refresh_token,
    decode_token
)
from portal.core.deps import get_current_user
from portal.db.session import get_db
from portal.api.v1.deps import get_redis, limiter
from portal.models.user import User, UserRole
from portal.schemas.auth import (
    UserCreate,
    UserResponse,
    ProfileUpdate,
    Token,
    RefreshToken,
)
from portal.core.config import settings

router = APIRouter(prefix="/auth")

REFRESH_TTL_SECONDS = settings.REFRESH_TOKEN_EXPIRE_DAYS * 24 * 60 * 60

def infer_role(email: str) -> str:
    """O papel é definido apenas no cadastro: admin se o email for o configurado."""
    if email.strip().lower() == settings.ADMIN_EMAIL.strip().lower():
        return UserRole.ADMIN.value
    return UserRole.STARTUP.value

async def _issue_tokens(user: User, redis: Redis) -> Token:
    access_token = create_access_token(user.id)
    refresh_token_jwt = create_refresh_token(user.id)

    decoded_payload = decode_token(refresh_token_jwt)
    if not decoded_payload or "jti" not in decoded_payload:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Falha ao gerar JTI para refresh token")

    await redis.set(f"refresh_token_jti:{decoded_payload['jti']}", str(user.id), ex=REFRESH_TTL_SECONDS)

    return Token(
        access_token=access_token,
        refresh_token=refresh_token_jwt,
        token_type="bearer"
    )

@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("10/minute")
async def register(
    request: Request,
    user_in: UserCreate,
    db: AsyncSession = Depends(get_db)
):
    """
    Registra uma nova conta com email e senha.
    """
    # Verifica se o email já está em uso
    result = await db.execute(select(User).where(User.email == user_in.email))
    existing_user = result.scalar_one_or_none()

    if existing_user:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email já registrado"
        )

    user = User(
        email=user_in.email,
        hashed_password=hash_password(user_in.password),
        name=user_in.name,
        cnpj=user_in.cnpj,
        phone=user_in.phone,
        role=infer_role(user_in.email),
    )

    db.add(user)
    await db.commit()
    await db.refresh(user)

    return user

@router.post("/login", response_model=Token)
@limiter.limit("15/minute")
async def login(
    request: Request,
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: AsyncSession = Depends(get_db),
    redis: Redis = Depends(get_redis)
):
    """
    Realiza o login e retorna os tokens de acesso e refresh.
    """
    result = await db.execute(select(User).where(User.email == form_data.username))
    user = result.scalar_one_or_none()

    if not user or not verify_password(form_data.password, user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Email ou senha incorretos",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Usuário inativo")

    user.last_login = datetime.now(timezone.utc)
    await db.commit()

    return await _issue_tokens(user, redis)

@router.post("/refresh", response_model=Token)
@limiter.limit("20/minute")
async def refresh(
    request: Request,
    refresh_data: RefreshToken,
    db: AsyncSession = Depends(get_db),
    redis: Redis = Depends(get_redis)
):
    """
    Usa um refresh token (JWT) para obter um novo par de tokens.
    """
    decoded_payload = decode_token(refresh_data.refresh_token)
    if not decoded_payload or decoded_payload.get("type") != "refresh":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Refresh token inválido ou tipo incorreto")

    refresh_jti = decoded_payload.get("jti")
    if not refresh_jti:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Refresh token inválido (sem jti)")

    if await redis.exists(f"revoked_jti:{refresh_jti}"):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token revogado")

    stored_user_id = await redis.get(f"refresh_token_jti:{refresh_jti}")
    if not stored_user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token inválido ou expirado")

    if isinstance(stored_user_id, bytes):
        stored_user_id = stored_user_id.decode("utf-8")

    user = await db.get(User, uuid.UUID(stored_user_id))
    if not user or not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Usuário não encontrado ou inativo")

    # Rotação: o JTI antigo vai para a blacklist
    await redis.setex(f"revoked_jti:{refresh_jti}", REFRESH_TTL_SECONDS, "1")
    await redis.delete(f"refresh_token_jti:{refresh_jti}")

    return await _issue_tokens(user, redis)

@router.post("/logout", status_code=status.HTTP_200_OK)
async def logout(
    refresh_data: RefreshToken,
    current_user: User = Depends(get_current_user),
    redis: Redis = Depends(get_redis)
):
    """
    Realiza o logout, revogando o JTI do refresh token.
    """
    decoded_payload = decode_token(refresh_data.refresh_token)
    if not decoded_payload or decoded_payload.get("type") != "refresh" or "jti" not in decoded_payload:
        return {"message": "Logout processado (token inválido ou sem JTI)."}

    refresh_jti = decoded_payload["jti"]
    await redis.setex(f"revoked_jti:{refresh_jti}", REFRESH_TTL_SECONDS, "1")
    await redis.delete(f"refresh_token_jti:{refresh_jti}")

    return {"message": "Logout realizado com sucesso"}

@router.get("/me", response_model=UserResponse)
async def read_me(current_user: User = Depends(get_current_user)):
    return current_user

@router.put("/me", response_model=UserResponse)
async def update_me(
    profile_in: ProfileUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Atualiza o perfil do usuário logado. Papel e status não são alteráveis aqui.
    """
    for field, value in profile_in.model_dump(exclude_unset=True).items():
        setattr(current_user, field, value)

    await db.commit()
    await db.refresh(current_user)
    return current_user
