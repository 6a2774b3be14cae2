from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession
import uuid

from portal.core.config import settings
from portal.core.security import decode_token
from portal.db.session import get_db
from portal.models.user import User, UserRole

# OAuth2 scheme para extração do token do cabeçalho de autorização
oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_V1_STR}/auth/login")

async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db)
) -> User:
    """
    Dependência para obter o usuário atual a partir do token JWT.
    Valida o token e busca o usuário no banco de dados.
    """
    # Erro padrão de autenticação
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Credenciais inválidas",
        headers={"WWW-Authenticate": "Bearer"},
    )

    payload = decode_token(token)
    if not payload or payload.get("type") != "access":
        raise credentials_exception

    user_id = payload.get("sub")
    if user_id is None:
        raise credentials_exception

    try:
        user_uuid = uuid.UUID(user_id)
    except ValueError:
        raise credentials_exception

    user = await db.get(User, user_uuid)
    if user is None:
        raise credentials_exception

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Usuário inativo"
        )

    return user

async def get_current_admin(
    current_user: User = Depends(get_current_user),
) -> User:
    """
    Dependência para rotas do back office: exige o papel de admin.
    """
    if current_user.role != UserRole.ADMIN.value:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Acesso restrito a administradores"
        )
    return current_user

async def get_current_startup(
    current_user: User = Depends(get_current_user),
) -> User:
    """
    Dependência para rotas da área da startup.
    """
    if current_user.role != UserRole.STARTUP.value:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Acesso restrito a startups"
        )
    return current_user
