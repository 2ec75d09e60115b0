from diagram_sync.domains.identity.entities import User
from diagram_sync.domains.identity.schemas import (
    UserSignup, UserLogin, UserUpdate, PasswordChange,
    UserResponse, AuthResponse, ExternalIdentity
)

__all__ = [
    "User",
    "UserSignup", "UserLogin", "UserUpdate", "PasswordChange",
    "UserResponse", "AuthResponse", "ExternalIdentity"
]
