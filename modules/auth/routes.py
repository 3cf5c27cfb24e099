"""
Auth Module - Routes
=====================
Admin login and token check.

  POST /auth  : username/password -> 7-day admin token (also set as auth_token cookie)
  GET  /auth  : who does this token belong to?
"""

from fastapi import APIRouter, Depends, Request, Response
from pydantic import BaseModel

from common.security import enforce_rate_limit, get_request_token
from config.settings import ACCESS_TOKEN_EXPIRE_MINUTES, DEBUG
from modules.auth.service import auth_service

router = APIRouter(prefix="/auth", tags=["auth"])


class LoginRequest(BaseModel):
    username: str = ""
    password: str = ""


@router.post("", dependencies=[Depends(enforce_rate_limit)])
async def admin_login(body: LoginRequest, response: Response):
    result = auth_service.login_admin(body.username, body.password)
    response.set_cookie(
        "auth_token", result["token"],
        httponly=True, samesite="lax", secure=not DEBUG,
        max_age=ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )
    return {
        "success": True,
        "message": "Login successful",
        "token": result["token"],
        "user": result["user"],
    }


@router.get("")
async def verify_token(request: Request):
    user = auth_service.verify(get_request_token(request))
    return {
        "success": True,
        "user": {"username": user.user_id, "role": user.role},
    }
