import pyotp
import qrcode
import io
import base64
import uuid
from typing import List, Optional
import logging

from passlib.context import CryptContext

from fuelos.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()

backup_code_context = CryptContext(schemes=["bcrypt"], bcrypt__rounds=settings.bcrypt_rounds)


class TOTPService:
    @staticmethod
    def generate_totp_secret() -> str:
        """Generate a new TOTP secret"""
        return pyotp.random_base32()

    @staticmethod
    def provisioning_uri(email: str, secret: str) -> str:
        return pyotp.totp.TOTP(secret).provisioning_uri(
            name=email,
            issuer_name=settings.totp_issuer
        )

    @staticmethod
    def generate_qr_code(totp_uri: str) -> str:
        """Render an otpauth:// URI as a PNG data URI"""
        qr = qrcode.QRCode(version=1, box_size=10, border=5)
        qr.add_data(totp_uri)
        qr.make(fit=True)

        img = qr.make_image(fill_color="black", back_color="white")

        # Convert to base64
        buffer = io.BytesIO()
        img.save(buffer, format="PNG")
        img_str = base64.b64encode(buffer.getvalue()).decode()

        return f"data:image/png;base64,{img_str}"

    @staticmethod
    def clean_code(code) -> str:
        return str(code or "").strip().replace(" ", "")

    @staticmethod
    def verify_totp(secret: str, code: str) -> bool:
        """Verify a 6-digit code with one 30s step of drift either side"""
        if not secret or not code:
            return False

        clean_code = TOTPService.clean_code(code)
        if len(clean_code) != 6 or not clean_code.isdigit():
            return False

        totp = pyotp.TOTP(secret)
        return totp.verify(clean_code, valid_window=1)

    @staticmethod
    def generate_backup_codes(count: Optional[int] = None) -> List[str]:
        return [uuid.uuid4().hex[:8] for _ in range(count or settings.backup_code_count)]

    @staticmethod
    def hash_backup_code(code: str) -> str:
        return backup_code_context.hash(code.lower())

    @staticmethod
    def match_backup_code(code: str, hashed_codes: List[str]) -> Optional[int]:
        """Index of the stored hash matching code (case-insensitive), or None"""
        candidate = TOTPService.clean_code(code).lower()
        if not candidate:
            return None
        for index, hashed in enumerate(hashed_codes or []):
            try:
                if backup_code_context.verify(candidate, hashed):
                    return index
            except ValueError:
                logger.warning("Skipping unreadable backup code hash")
        return None
