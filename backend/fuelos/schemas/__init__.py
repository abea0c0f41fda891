from .auth import (
    UserLogin, AdminVerify, UserResponse, Token, AdminLoginResponse,
    TOTPSetup, TOTPEnable, TOTPEnabled, TOTPDisable, TOTPStatus,
    PasswordChange, PasswordReset, ProfileUpdate, CompanyUserCreate, CompanyUserResponse, Success
)

__all__ = [
    "UserLogin", "AdminVerify", "UserResponse", "Token", "AdminLoginResponse",
    "TOTPSetup", "TOTPEnable", "TOTPEnabled", "TOTPDisable", "TOTPStatus",
    "PasswordChange", "PasswordReset", "ProfileUpdate", "CompanyUserCreate", "CompanyUserResponse", "Success"
]
