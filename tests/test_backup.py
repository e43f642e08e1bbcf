"""Backup code generation and checking."""
import re

import pytest

from mfa_core.errors import MFAErrorKind, Unsupported
from mfa_core.mfa import format_codes_for_display
from mfa_core.mfa.backup import (
    generate_backup_code,
    hash_backup_code,
    is_well_formed,
    verify_backup_code,
)
from mfa_core.schema import MethodKind

CODE_RE = re.compile(r"^[A-Z0-9]{8}$")


class TestBackupCodeHelpers:

    def test_generated_code_format(self):
        for _ in range(100):
            assert CODE_RE.match(generate_backup_code())

    def test_verify_matches_own_hash(self):
        code = generate_backup_code()

        assert verify_backup_code(code, hash_backup_code(code))

    def test_verify_rejects_other_code(self):
        assert not verify_backup_code("ABCD1235", hash_backup_code("ABCD1234"))

    @pytest.mark.parametrize("code", ["ABCD123", "ABCD12345", "abcd1234", "ABCD-123"])
    def test_malformed_codes(self, code):
        assert not is_well_formed(code)
        assert not verify_backup_code(code, hash_backup_code(code))


class TestGenerateBackupCodes:

    def test_ten_distinct_codes_registered(self, service, user_id):
        codes = service.backup_codes.generate_backup_codes(user_id, 10)

        assert len(codes) == 10
        assert len(set(codes)) == 10
        assert all(CODE_RE.match(c) for c in codes)

        methods = service.list_methods(user_id)
        assert len(methods) == 10
        for method in methods:
            assert method.kind == MethodKind.BACKUP
            assert method.is_verified
            assert not method.is_primary
            assert method.destination is None

    def test_plain_codes_are_not_stored(self, service, user_id):
        codes = service.backup_codes.generate_backup_codes(user_id, 3)

        secrets = {m.secret for m in service.list_methods(user_id)}
        assert secrets == {hash_backup_code(c) for c in codes}
        assert not secrets & set(codes)

    def test_default_count_from_settings(self, service, user_id):
        codes = service.backup_codes.generate_backup_codes(user_id)

        assert len(codes) == 10

    def test_does_not_change_existing_primary(self, service, user_id, enroll_sms):
        sms = enroll_sms(user_id)

        service.backup_codes.generate_backup_codes(user_id, 2)

        primaries = [m for m in service.list_methods(user_id) if m.is_primary]
        assert [m.id for m in primaries] == [sms.id]

    def test_count_remaining(self, service, user_id):
        service.backup_codes.generate_backup_codes(user_id, 4)

        assert service.remaining_backup_codes(user_id) == 4

    @pytest.mark.parametrize("count", [0, -3])
    def test_rejects_non_positive_count(self, service, user_id, count):
        with pytest.raises(Unsupported):
            service.backup_codes.generate_backup_codes(user_id, count)

        result = service.generate_backup_codes(user_id, count)
        assert result.success is False
        assert result.error == MFAErrorKind.UNSUPPORTED
        assert service.remaining_backup_codes(user_id) == 0


def test_format_codes_for_display():
    sheet = format_codes_for_display(["AAAA1111", "BBBB2222"], issuer="GasRapido")

    assert sheet.startswith("GasRapido Backup Codes")
    assert " 1. AAAA1111" in sheet
    assert " 2. BBBB2222" in sheet
