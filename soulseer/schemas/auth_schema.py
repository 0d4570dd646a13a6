from typing import Optional

from pydantic import BaseModel, EmailStr, Field


class RegisterRequest(BaseModel):
    """
    Email / password sign up
    """
    name: str = Field(..., min_length=1, max_length=100, description="display name")
    email: EmailStr = Field(..., description="login email")
    password: str = Field(..., min_length=8, max_length=100, description="password (8+ characters)")
    timezone: Optional[str] = Field(None, description="IANA timezone, defaults to UTC")

    class Config:
        json_schema_extra = {
            "example": {
                "name": "Luna Client",
                "email": "luna@example.com",
                "password": "securepassword123",
                "timezone": "America/New_York"
            }
        }


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class TokenPair(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class TokenRefreshRequest(BaseModel):
    refresh_token: str


class FirebaseSyncRequest(BaseModel):
    """
    Firebase ID token plus optional profile fields for first sign in
    """
    id_token: str = Field(..., description="Firebase ID token")
    name: Optional[str] = Field(None, max_length=100, description="display name override")
    timezone: Optional[str] = Field(None, description="IANA timezone")
