"""
Tests for contacts integration and the app lock.
"""

import pytest

from conftest import FakeBiometricService, run
from iou_tracker.models.debt import UserSettings
from iou_tracker.services.auth import AuthGate, is_pin_hash
from iou_tracker.services.contacts import (
    ContactsManager,
    clean_phone_number,
    format_phone_number,
    is_valid_phone_number,
)
from iou_tracker.services.features import FeatureDisabledError
from iou_tracker.services.platform import (
    CapabilityUnavailableError,
    Contact,
    ContactsService,
    PermissionDeniedError,
    UnavailableBiometricService,
    UnavailableContactsService,
)


class FakeContactsService(ContactsService):
    def __init__(self, contacts, grant=True):
        self._contacts = contacts
        self._grant = grant
        self.granted = False

    def is_available(self):
        return True

    async def has_permission(self):
        return self.granted

    async def request_permission(self):
        self.granted = self._grant
        return self._grant

    async def list_contacts(self):
        return list(self._contacts)


CONTACTS = [
    Contact(id="2", name="kofi Boateng", phone_numbers=["+233 20 555 0101"]),
    Contact(id="1", name="Ama Mensah", emails=["ama@example.com"]),
    Contact(id="3", name="   "),
]


class TestPhoneHelpers:
    """Tests for phone number helpers."""

    def test_clean(self):
        assert clean_phone_number("+1 (555) 123-4567") == "15551234567"

    def test_validity(self):
        assert is_valid_phone_number("555-1234") is True
        assert is_valid_phone_number("12345") is False
        assert is_valid_phone_number("1" * 16) is False

    def test_format(self):
        assert format_phone_number("5551234567") == "(555) 123-4567"
        assert format_phone_number("15551234567") == "+1 (555) 123-4567"
        assert format_phone_number("233205550101") == "233 205 550101"


class TestContactsManager:
    """Tests for permission-gated contact access."""

    def test_list_contacts_sorted_without_blank_names(self, all_features):
        manager = ContactsManager(FakeContactsService(CONTACTS), all_features)
        assert [c.id for c in run(manager.list_contacts())] == ["1", "2"]

    def test_search(self, all_features):
        manager = ContactsManager(FakeContactsService(CONTACTS), all_features)
        assert [c.id for c in run(manager.search_contacts("KOFI"))] == ["2"]
        assert [c.id for c in run(manager.search_contacts("555"))] == ["2"]
        assert [c.id for c in run(manager.search_contacts("example.com"))] == ["1"]
        assert run(manager.search_contacts("  ")) == []

    def test_get_contact(self, all_features):
        manager = ContactsManager(FakeContactsService(CONTACTS), all_features)
        assert run(manager.get_contact("1")).name == "Ama Mensah"
        assert run(manager.get_contact("9")) is None

    def test_permission_denied(self, all_features, audit_logger, audit_storage):
        manager = ContactsManager(
            FakeContactsService(CONTACTS, grant=False),
            all_features,
            audit_logger=audit_logger,
        )
        with pytest.raises(PermissionDeniedError):
            run(manager.list_contacts())
        assert len(run(audit_storage.get_recent_events())) == 1

    def test_unavailable(self, all_features, audit_logger, audit_storage):
        manager = ContactsManager(
            UnavailableContactsService(),
            all_features,
            audit_logger=audit_logger,
        )
        assert manager.is_available() is False
        with pytest.raises(CapabilityUnavailableError):
            run(manager.list_contacts())
        events = run(audit_storage.get_recent_events())
        assert events[0].details["capability"] == "contacts"

    def test_feature_switched_off(self, no_features):
        manager = ContactsManager(FakeContactsService(CONTACTS), no_features)
        assert manager.is_available() is False
        with pytest.raises(FeatureDisabledError):
            run(manager.list_contacts())


class TestAuthGatePin:
    """Tests for PIN hashing and verification."""

    def test_hash_and_verify(self):
        gate = AuthGate(UnavailableBiometricService())
        pin_hash = gate.hash_pin("1234", "1234")

        assert is_pin_hash(pin_hash)

        settings = UserSettings(pin_enabled=True, pin=pin_hash)
        assert gate.verify_pin(settings, "1234") is True
        assert gate.verify_pin(settings, "4321") is False
        assert gate.needs_rehash(settings) is False

    @pytest.mark.parametrize("pin", ["123", "1234567", "12a4", ""])
    def test_invalid_pins(self, pin):
        with pytest.raises(ValueError, match="PIN must be"):
            AuthGate(UnavailableBiometricService()).hash_pin(pin)

    def test_confirmation_must_match(self):
        with pytest.raises(ValueError, match="do not match"):
            AuthGate(UnavailableBiometricService()).hash_pin("1234", "1243")

    def test_legacy_plaintext_pin(self):
        """Test that a PIN stored by the mobile app still unlocks."""
        gate = AuthGate(UnavailableBiometricService())
        settings = UserSettings(pin_enabled=True, pin="2580")
        assert gate.verify_pin(settings, "2580") is True
        assert gate.verify_pin(settings, "0000") is False
        assert gate.needs_rehash(settings) is True

    def test_no_pin_never_verifies(self):
        gate = AuthGate(UnavailableBiometricService())
        assert gate.verify_pin(UserSettings(), "1234") is False
        assert gate.needs_rehash(UserSettings()) is False


class TestAuthGateBiometrics:
    """Tests for biometric checks."""

    def test_confirm_biometric(self):
        biometrics = FakeBiometricService()
        run(AuthGate(biometrics).confirm_biometric())
        assert len(biometrics.prompts) == 1

    def test_no_hardware_or_enrollment(self):
        with pytest.raises(CapabilityUnavailableError, match="not available"):
            run(AuthGate(FakeBiometricService(hardware=False)).confirm_biometric())
        with pytest.raises(CapabilityUnavailableError, match="enrolled"):
            run(AuthGate(FakeBiometricService(enrolled=False)).confirm_biometric())

    def test_failed_authentication(self):
        with pytest.raises(PermissionDeniedError):
            run(AuthGate(FakeBiometricService(succeeds=False)).confirm_biometric())

    def test_unlock_with_biometric(self):
        gate = AuthGate(FakeBiometricService())
        assert run(gate.unlock_with_biometric(UserSettings(biometric_enabled=True))) is True
        assert run(gate.unlock_with_biometric(UserSettings())) is False

    def test_unavailable_biometrics(self):
        gate = AuthGate(UnavailableBiometricService())
        assert run(gate.biometric_available()) is False
        assert run(gate.unlock_with_biometric(UserSettings(biometric_enabled=True))) is False
