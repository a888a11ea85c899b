"""
Contacts Integration

Lets the record form pick a counterparty from the device address book.
Requires the contacts_integration feature and the contacts permission.
"""

import re
from typing import Optional

from iou_tracker.audit import AuditLogger
from iou_tracker.models.debt import Feature
from iou_tracker.services.features import FeatureFlags
from iou_tracker.services.platform import (
    CapabilityUnavailableError,
    Contact,
    ContactsService,
    PermissionDeniedError,
)


_NON_DIGITS = re.compile(r"\D")


def clean_phone_number(phone_number: str) -> str:
    """Digits only."""
    return _NON_DIGITS.sub("", phone_number)


def is_valid_phone_number(phone_number: str) -> bool:
    """7 to 15 digits once cleaned."""
    return 7 <= len(clean_phone_number(phone_number)) <= 15


def format_phone_number(phone_number: str) -> str:
    """
    Format a phone number for display.

    10 digits: (555) 123-4567
    11 digits starting with 1: +1 (555) 123-4567
    Anything else: digits grouped as 3 3 rest
    """
    digits = clean_phone_number(phone_number)
    if len(digits) == 10:
        return f"({digits[:3]}) {digits[3:6]}-{digits[6:]}"
    if len(digits) == 11 and digits[0] == "1":
        return f"+1 ({digits[1:4]}) {digits[4:7]}-{digits[7:]}"
    return re.sub(r"^(\d{3})(\d{3})(\d+)$", r"\1 \2 \3", digits)


class ContactsManager:
    """Permission-gated access to device contacts."""

    def __init__(
        self,
        service: ContactsService,
        feature_flags: FeatureFlags,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._service = service
        self._feature_flags = feature_flags
        self._audit_logger = audit_logger

    def is_available(self) -> bool:
        return (
            self._feature_flags.is_enabled(Feature.CONTACTS_INTEGRATION)
            and self._service.is_available()
        )

    async def _ensure_permission(self) -> None:
        if await self._service.has_permission():
            return
        if await self._service.request_permission():
            return
        if self._audit_logger:
            await self._audit_logger.log_permission_denied("contacts")
        raise PermissionDeniedError("contacts")

    async def list_contacts(self) -> list[Contact]:
        """
        All contacts with a name, sorted by name.

        Raises:
            FeatureDisabledError: If contacts integration is switched off
            CapabilityUnavailableError: If there is no address book
            PermissionDeniedError: If the user refuses access
        """
        self._feature_flags.require(Feature.CONTACTS_INTEGRATION)
        if not self._service.is_available():
            if self._audit_logger:
                await self._audit_logger.log_capability_unavailable("contacts", "list_contacts")
            raise CapabilityUnavailableError("contacts")

        await self._ensure_permission()

        contacts = [c for c in await self._service.list_contacts() if c.name.strip()]
        contacts.sort(key=lambda c: c.name.casefold())
        return contacts

    async def search_contacts(self, query: str) -> list[Contact]:
        """Contacts whose name, phone number or email contains the query."""
        term = query.strip().lower()
        if not term:
            return []

        return [
            contact for contact in await self.list_contacts()
            if term in contact.display_name.lower()
            or any(term in phone for phone in contact.phone_numbers)
            or any(term in email.lower() for email in contact.emails)
        ]

    async def get_contact(self, contact_id: str) -> Optional[Contact]:
        for contact in await self.list_contacts():
            if contact.id == contact_id:
                return contact
        return None
