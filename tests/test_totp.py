"""TOTP primitive tests."""
import base64
from datetime import timedelta

from mfa_core.mfa import TOTPManager


class TestSecrets:

    def test_secret_is_base32_160_bits(self, totp):
        secret = totp.generate_secret()

        assert len(secret) == 32
        assert len(base64.b32decode(secret)) == 20

    def test_secrets_are_unique(self, totp):
        assert len({totp.generate_secret() for _ in range(50)}) == 50


class TestTimeStepDelta:

    def test_current_code_is_exact_match(self, totp, clock):
        secret = totp.generate_secret()
        code = totp.get_current_code(secret, clock())

        assert totp.time_step_delta(secret, code, for_time=clock()) == 0
        assert totp.verify(secret, code, for_time=clock())

    def test_previous_step_reports_negative_delta(self, totp, clock):
        secret = totp.generate_secret()
        code = totp.get_current_code(secret, clock() - timedelta(seconds=30))

        assert totp.time_step_delta(secret, code, for_time=clock()) == -1
        assert not totp.verify(secret, code, for_time=clock())

    def test_next_step_reports_positive_delta(self, totp, clock):
        secret = totp.generate_secret()
        code = totp.get_current_code(secret, clock() + timedelta(seconds=30))

        assert totp.time_step_delta(secret, code, for_time=clock()) == 1

    def test_code_outside_window_is_invalid(self, totp, clock):
        secret = "JBSWY3DPEHPK3PXP"
        code = totp.get_current_code(secret, clock() - timedelta(minutes=10))

        assert totp.time_step_delta(secret, code, for_time=clock()) is None

    def test_malformed_codes_are_invalid(self, totp, clock):
        secret = totp.generate_secret()

        assert totp.time_step_delta(secret, "12345", for_time=clock()) is None
        assert totp.time_step_delta(secret, "abcdef", for_time=clock()) is None
        assert totp.time_step_delta(secret, "", for_time=clock()) is None

    def test_separators_are_ignored(self, totp, clock):
        secret = totp.generate_secret()
        code = totp.get_current_code(secret, clock())

        assert totp.time_step_delta(secret, f"{code[:3]} {code[3:]}", for_time=clock()) == 0


class TestEnrollmentPayload:

    def test_provisioning_uri(self):
        manager = TOTPManager(issuer_name="GasRapido")
        secret = manager.generate_secret()

        uri = manager.generate_provisioning_uri(secret, "alice@example.com")

        assert uri.startswith("otpauth://totp/")
        assert f"secret={secret}" in uri
        assert "issuer=GasRapido" in uri

    def test_payload_contains_png_qr_code(self, totp):
        payload = totp.enrollment_payload(totp.generate_secret(), "alice@example.com")

        png = base64.b64decode(payload.qr_code_base64)
        assert png.startswith(b"\x89PNG")
        assert payload.provisioning_uri.startswith("otpauth://totp/")
