# grm/api/routes/auth.py
from fastapi import APIRouter, Request as FastAPIRequest, Depends
from grm.api.deps import get_current_user
from grm.core.security import LOGIN_LIMIT, create_access_token, limiter
from grm.models.user import Token, UserLogin, UserOut
from grm.services import user_service as svc

router = APIRouter(prefix="/auth")

@router.post("/login", response_model=Token)
@limiter.limit(LOGIN_LIMIT)
async def login(request: FastAPIRequest, user_login: UserLogin):
    user = await svc.authenticate(user_login.email, user_login.password)
    return {"access_token": create_access_token(user), "token_type": "bearer", "user": user}

@router.get("/me", response_model=UserOut)
async def me(current_user=Depends(get_current_user)):
    return current_user
