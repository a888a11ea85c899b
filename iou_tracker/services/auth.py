"""
App Lock (PIN and Biometrics)

The PIN is stored as an argon2 hash inside the user settings. Biometric
unlock is delegated to the platform; enabling it first checks hardware
and enrollment, then asks the user to authenticate once.
"""

import hmac
from typing import Optional

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHash, VerificationError, VerifyMismatchError

from iou_tracker.models.debt import UserSettings
from iou_tracker.services.platform import (
    BiometricService,
    CapabilityUnavailableError,
    PermissionDeniedError,
)


PIN_MIN_LENGTH = 4
PIN_MAX_LENGTH = 6

_hasher = PasswordHasher()


def is_pin_hash(value: Optional[str]) -> bool:
    return bool(value) and value.startswith("$argon2")


class AuthGate:
    """PIN hashing/verification and biometric checks."""

    def __init__(
        self,
        biometrics: BiometricService,
        hasher: Optional[PasswordHasher] = None,
    ):
        self._biometrics = biometrics
        self._hasher = hasher or _hasher

    @staticmethod
    def requires_authentication(settings: UserSettings) -> bool:
        return settings.requires_authentication

    # -------------------------------------------------------------------------
    # PIN
    # -------------------------------------------------------------------------

    def hash_pin(self, pin: str, confirm_pin: Optional[str] = None) -> str:
        """
        Validate and hash a new PIN.

        Raises:
            ValueError: If the PIN is not 4-6 digits or the confirmation differs
        """
        if not pin.isdigit() or not PIN_MIN_LENGTH <= len(pin) <= PIN_MAX_LENGTH:
            raise ValueError(
                f"PIN must be {PIN_MIN_LENGTH} to {PIN_MAX_LENGTH} digits"
            )
        if confirm_pin is not None and confirm_pin != pin:
            raise ValueError("PINs do not match")
        return self._hasher.hash(pin)

    def verify_pin(self, settings: UserSettings, pin: str) -> bool:
        """Check a PIN attempt against the stored hash."""
        stored = settings.pin
        if not stored:
            return False
        if not is_pin_hash(stored):
            # PINs saved by the mobile app are plaintext
            return hmac.compare_digest(stored.encode(), pin.encode())
        try:
            return self._hasher.verify(stored, pin)
        except (VerifyMismatchError, InvalidHash, VerificationError):
            return False

    def needs_rehash(self, settings: UserSettings) -> bool:
        """True for plaintext PINs or hashes made with outdated parameters."""
        if not settings.pin:
            return False
        if not is_pin_hash(settings.pin):
            return True
        return self._hasher.check_needs_rehash(settings.pin)

    # -------------------------------------------------------------------------
    # Biometrics
    # -------------------------------------------------------------------------

    async def biometric_available(self) -> bool:
        return await self._biometrics.has_hardware() and await self._biometrics.is_enrolled()

    async def confirm_biometric(
        self,
        prompt: str = "Authenticate to enable biometric lock",
    ) -> None:
        """
        Make sure biometric unlock works before switching it on.

        Raises:
            CapabilityUnavailableError: No hardware or nothing enrolled
            PermissionDeniedError: The user failed or cancelled authentication
        """
        if not await self._biometrics.has_hardware():
            raise CapabilityUnavailableError(
                "biometrics",
                "Biometric authentication is not available on this device",
            )
        if not await self._biometrics.is_enrolled():
            raise CapabilityUnavailableError(
                "biometrics",
                "No biometric data is enrolled on this device",
            )
        if not await self._biometrics.authenticate(prompt):
            raise PermissionDeniedError("biometrics", "Biometric authentication failed")

    async def unlock_with_biometric(
        self,
        settings: UserSettings,
        prompt: str = "Unlock IOU Tracker",
    ) -> bool:
        if not settings.biometric_enabled:
            return False
        if not await self.biometric_available():
            return False
        return await self._biometrics.authenticate(prompt)
