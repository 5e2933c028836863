from pydantic import BaseModel, EmailStr, Field

# NOTE: email-validator is required by Pydantic for EmailStr validation


class UserRegister(BaseModel):
    username: str = Field(..., min_length=3, max_length=12, pattern=r"^[A-Za-z0-9_.-]+$")
    email: EmailStr
    password: str = Field(..., min_length=8)


class Token(BaseModel):
    access_token: str
    token_type: str
    expires_in: int


class TokenPayload(BaseModel):
    sub: str
    exp: int
