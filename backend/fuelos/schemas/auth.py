from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field


class CamelModel(BaseModel):
    class Config:
        populate_by_name = True


class UserLogin(BaseModel):
    email: str = Field(min_length=1)
    password: str = Field(min_length=1)
    role: str = Field(min_length=1)


class AdminVerify(CamelModel):
    otp: Optional[str] = None
    code: Optional[str] = None
    role: str = Field(min_length=1)
    email: Optional[str] = None
    challenge_token: Optional[str] = Field(None, alias="challengeToken")


class UserResponse(CamelModel):
    id: str
    email: str
    name: Optional[str] = None
    role: str
    status: Optional[str] = None
    tenant_id: Optional[str] = Field(None, alias="tenantId")
    pump_id: Optional[str] = Field(None, alias="pumpId")
    phone: Optional[str] = None
    plan: Optional[str] = None
    business_name: Optional[str] = Field(None, alias="businessName")
    gst: Optional[str] = None
    pan: Optional[str] = None
    address: Optional[str] = None
    shift: Optional[str] = None
    totp_enabled: Optional[bool] = Field(None, alias="totpEnabled")
    last_login: Optional[datetime] = Field(None, alias="lastLogin")


class Token(BaseModel):
    token: str
    role: str
    user: UserResponse


class AdminLoginResponse(BaseModel):
    success: bool = True
    role: str
    two_fa: bool = False
    message: Optional[str] = None
    challenge_token: Optional[str] = None
    dev_otp: Optional[str] = None


class TOTPSetup(CamelModel):
    secret: str
    qr_data_uri: str = Field(alias="qrDataUri")
    otpauth_uri: str = Field(alias="otpauthUri")


class TOTPEnable(BaseModel):
    code: str = Field(min_length=1)


class TOTPEnabled(CamelModel):
    success: bool = True
    backup_codes: List[str] = Field(alias="backupCodes")


class TOTPDisable(BaseModel):
    password: str = Field(min_length=1)


class TOTPStatus(CamelModel):
    enabled: bool
    pending: bool
    backup_codes_count: int = Field(alias="backupCodesCount")


class PasswordChange(CamelModel):
    current_password: str = Field(alias="currentPassword", min_length=1)
    new_password: str = Field(alias="newPassword", min_length=1)


class ProfileUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1)
    phone: Optional[str] = None
    business_name: Optional[str] = Field(None, alias="businessName")
    gst: Optional[str] = None
    pan: Optional[str] = None
    address: Optional[str] = None


class PasswordReset(BaseModel):
    password: str = Field(min_length=1)


class CompanyUserCreate(BaseModel):
    email: EmailStr
    name: str = Field(min_length=1)
    role: str
    password: str = Field(min_length=1)


class CompanyUserResponse(CamelModel):
    id: str
    email: str
    name: str
    role: str
    status: str
    totp_enabled: bool = Field(alias="totpEnabled")
    last_login: Optional[datetime] = Field(None, alias="lastLogin")
    created_at: Optional[datetime] = Field(None, alias="createdAt")

    class Config:
        from_attributes = True
        populate_by_name = True


class Success(BaseModel):
    success: bool = True
