"""Tests for TOTP code verification and enrollment material."""

from unittest.mock import patch

import pyotp
import pytest
from api.services.totp import (
    account_label,
    generate_totp_setup,
    is_well_formed_code,
    verify_totp,
)

SECRET = "JBSWY3DPEHPK3PXP"
# 15 seconds into a 30-second step.
T0 = 1_700_000_025


class TestCodeShape:
    @pytest.mark.parametrize("code", ["123456", " 123456 ", "000000"])
    def test_six_digits_accepted(self, code):
        assert is_well_formed_code(code)

    @pytest.mark.parametrize("code", ["", "12345", "1234567", "12a456", "12 456", None, 123456])
    def test_anything_else_rejected(self, code):
        assert not is_well_formed_code(code)


class TestVerifyTotp:
    def test_current_code_is_valid(self):
        code = pyotp.TOTP(SECRET).at(T0)
        assert verify_totp(SECRET, code, "admin@test.local", for_time=T0) is True

    @pytest.mark.parametrize("offset", [-60, -30, 30, 60])
    def test_drift_within_two_steps_accepted(self, offset):
        code = pyotp.TOTP(SECRET).at(T0)
        assert verify_totp(SECRET, code, for_time=T0 + offset) is True

    @pytest.mark.parametrize("offset", [-90, 90, 300])
    def test_drift_beyond_two_steps_rejected(self, offset):
        code = pyotp.TOTP(SECRET).at(T0)
        assert verify_totp(SECRET, code, for_time=T0 + offset) is False

    def test_secret_is_normalized(self):
        code = pyotp.TOTP(SECRET).at(T0)
        assert verify_totp(" jbsw y3dp ehpk 3pxp ", code, for_time=T0) is True

    @pytest.mark.parametrize("code", ["12345", "abcdef", "", "1234567"])
    def test_malformed_code_never_reaches_pyotp(self, code):
        with patch("api.services.totp.pyotp.TOTP") as totp_cls:
            assert verify_totp(SECRET, code) is False
        totp_cls.assert_not_called()

    def test_empty_secret_rejected(self):
        assert verify_totp("", "123456") is False

    def test_unusable_secret_fails_closed(self):
        assert verify_totp("not-base32!", "123456", "admin@test.local") is False


class TestSetupMaterial:
    def test_account_label_uses_local_part(self):
        assert account_label("admin@test.local") == "admin"
        assert account_label("no-at-sign") == "no-at-sign"

    def test_generate_setup(self):
        setup = generate_totp_setup("admin@test.local")
        assert len(setup.secret) == 32
        assert setup.manual_entry_key == setup.secret
        assert setup.provisioning_uri.startswith("otpauth://totp/")
        assert f"secret={setup.secret}" in setup.provisioning_uri
        assert "issuer=Verlux" in setup.provisioning_uri
        assert setup.qr_code.startswith("data:image/png;base64,")

    def test_each_setup_gets_a_fresh_secret(self):
        first = generate_totp_setup("admin@test.local")
        second = generate_totp_setup("admin@test.local")
        assert first.secret != second.secret
