import base64
import json
import time

import pytest
from jose import jwt

from restauri.core.config import settings
from restauri.core.token_validator import (
    DecodeError, ExpiredError, FormatError, SchemaError, TokenPayload,
    TokenValidationError, TokenValidator, decode, validate_and_decode,
    validate_expiry, validate_format, validate_payload,
)
from restauri.models.user import User
from restauri.services.auth_service import AuthService, SignatureError


def b64(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def make_token(payload, header=None) -> str:
    header = header or {"alg": "HS256", "typ": "JWT"}
    body = payload if isinstance(payload, bytes) else json.dumps(payload).encode()
    return f"{b64(json.dumps(header).encode())}.{b64(body)}.c2lnbmF0dXJl"


VALID_CLAIMS = {"exp": 2_000_000_000, "id": 1, "role": "admin", "username": "admin"}


class TestFormat:

    @pytest.mark.parametrize("token", [
        "",
        "abc",
        "abc.def",
        "a.b.c.d",
        ".payload.sig",
        "header..sig",
        "head er.payload.sig",
        "header.pay+load.sig",
        "header.payload.sig=",
        "abc.def.ghi\n",
        "h.p.\n",
    ])
    def test_rejects_malformed_tokens(self, token):
        with pytest.raises(FormatError):
            validate_format(token)

    def test_rejects_non_string(self):
        with pytest.raises(FormatError):
            validate_format(None)

    def test_accepts_empty_signature_segment(self):
        validate_format("header.payload.")

    def test_format_error_is_a_validation_error(self):
        with pytest.raises(TokenValidationError):
            validate_format("abc.def")


class TestDecode:

    def test_decodes_payload_segment(self):
        assert decode(make_token(VALID_CLAIMS)) == VALID_CLAIMS

    def test_non_json_payload(self):
        with pytest.raises(DecodeError):
            decode(make_token(b"not json"))

    def test_invalid_base64_length(self):
        with pytest.raises(DecodeError):
            decode("header.a.sig")

    def test_invalid_utf8(self):
        with pytest.raises(DecodeError):
            decode(make_token(b"\xff\xfe\xfd"))

    def test_wrong_segment_count(self):
        with pytest.raises(DecodeError):
            decode("only.two")

    def test_deeply_nested_payload(self):
        nested = b"[" * 100_000 + b"]" * 100_000
        with pytest.raises(DecodeError):
            decode(make_token(nested))


class TestPayloadSchema:

    @pytest.mark.parametrize("decoded", [[1, 2, 3], "admin", 42, None, True])
    def test_payload_must_be_an_object(self, decoded):
        with pytest.raises(SchemaError) as exc_info:
            validate_payload(decoded)
        assert "not an object" in str(exc_info.value)

    @pytest.mark.parametrize("missing", ["exp", "id", "role", "username"])
    def test_reports_missing_field(self, missing):
        claims = {k: v for k, v in VALID_CLAIMS.items() if k != missing}
        with pytest.raises(SchemaError) as exc_info:
            validate_payload(claims)
        assert exc_info.value.field == missing
        assert f"missing field '{missing}'" in str(exc_info.value)

    def test_first_missing_field_is_reported(self):
        with pytest.raises(SchemaError) as exc_info:
            validate_payload({"exp": 1, "id": 1})
        assert exc_info.value.field == "role"
        assert "role" in str(exc_info.value)

    def test_missing_fields_are_checked_before_types(self):
        with pytest.raises(SchemaError) as exc_info:
            validate_payload({"exp": "soon", "id": 1, "role": "admin"})
        assert exc_info.value.field == "username"

    @pytest.mark.parametrize("field,value", [
        ("exp", "2000000000"),
        ("exp", True),
        ("exp", float("inf")),
        ("id", "1"),
        ("id", False),
        ("id", None),
        ("role", 1),
        ("role", None),
        ("username", ["admin"]),
    ])
    def test_rejects_wrong_types(self, field, value):
        with pytest.raises(SchemaError) as exc_info:
            validate_payload({**VALID_CLAIMS, field: value})
        assert exc_info.value.field == field

    def test_extra_claims_are_ignored(self):
        payload = validate_payload({**VALID_CLAIMS, "iat": 1, "scope": "x"})
        assert payload == TokenPayload(**VALID_CLAIMS)

    @pytest.mark.parametrize("field", ["exp", "id"])
    def test_rejects_integers_too_large_for_a_float(self, field):
        with pytest.raises(SchemaError) as exc_info:
            validate_payload({**VALID_CLAIMS, field: 10 ** 400})
        assert exc_info.value.field == field

    def test_float_exp_and_id_are_accepted(self):
        payload = validate_payload({**VALID_CLAIMS, "exp": 1.5, "id": 2.0})
        assert payload.exp == 1.5
        assert payload.id == 2.0

    def test_is_admin(self):
        assert validate_payload(VALID_CLAIMS).is_admin
        assert not validate_payload({**VALID_CLAIMS, "role": "user"}).is_admin


class TestExpiry:

    def payload(self, exp):
        return TokenPayload(exp=exp, id=1, role="admin", username="admin")

    def test_not_expired(self):
        validate_expiry(self.payload(1000), now=999.999)

    def test_exp_equal_to_now_is_expired(self):
        with pytest.raises(ExpiredError) as exc_info:
            validate_expiry(self.payload(1000), now=1000)
        assert str(exc_info.value) == "Token expired"

    def test_past_exp_is_expired(self):
        with pytest.raises(ExpiredError):
            validate_expiry(self.payload(1000), now=5000)

    def test_buffer_treats_nearly_expired_tokens_as_expired(self):
        with pytest.raises(ExpiredError):
            validate_expiry(self.payload(1000), buffer_seconds=10, now=990)
        validate_expiry(self.payload(1000), buffer_seconds=9, now=990)

    def test_defaults_to_current_time(self):
        validate_expiry(self.payload(time.time() + 60))
        with pytest.raises(ExpiredError):
            validate_expiry(self.payload(time.time() - 60))


class TestValidateAndDecode:

    def test_valid_token(self):
        payload = validate_and_decode(make_token(VALID_CLAIMS), now=1_000_000_000)
        assert payload.username == "admin"
        assert payload.to_dict() == VALID_CLAIMS

    def test_checks_run_in_order(self):
        # Bad format wins over everything else
        with pytest.raises(FormatError):
            validate_and_decode("abc.def")
        # Schema is checked before expiry
        expired_and_incomplete = {"exp": 1, "id": 1}
        with pytest.raises(SchemaError):
            validate_and_decode(make_token(expired_and_incomplete), now=1_000_000_000)
        with pytest.raises(ExpiredError):
            validate_and_decode(make_token({**VALID_CLAIMS, "exp": 1}), now=1_000_000_000)

    def test_trailing_newline_is_rejected(self):
        with pytest.raises(FormatError):
            validate_and_decode(make_token(VALID_CLAIMS)[:-len("c2lnbmF0dXJl")] + "\n", now=1_000_000_000)

    def test_oversized_exp_is_a_schema_error(self):
        with pytest.raises(SchemaError):
            validate_and_decode(make_token({**VALID_CLAIMS, "exp": 10 ** 400}), now=1_000_000_000)

    def test_is_idempotent(self):
        token = make_token(VALID_CLAIMS)
        first = validate_and_decode(token, now=1_000_000_000)
        second = validate_and_decode(token, now=1_000_000_000)
        assert first == second


class TestTokenValidator:

    def test_uses_injected_clock_and_buffer(self):
        validator = TokenValidator(expiry_buffer_seconds=300, clock=lambda: 2_000_000_000 - 301)
        assert validator.validate_and_decode(make_token(VALID_CLAIMS)).id == 1

        validator = TokenValidator(expiry_buffer_seconds=300, clock=lambda: 2_000_000_000 - 300)
        with pytest.raises(ExpiredError):
            validator.validate_and_decode(make_token(VALID_CLAIMS))

    def test_rejects_negative_buffer(self):
        with pytest.raises(ValueError):
            TokenValidator(expiry_buffer_seconds=-1)

    def test_step_methods(self):
        validator = TokenValidator(clock=lambda: 0)
        token = make_token(VALID_CLAIMS)
        validator.validate_format(token)
        payload = validator.validate_payload(validator.decode(token))
        validator.validate_expiry(payload)


class TestIssuedTokens:

    def test_tokens_from_login_validate(self):
        user = User(id=7, username="admin", role="admin")
        token = AuthService.create_access_token(user)

        payload = TokenValidator().validate_and_decode(token)

        assert payload.id == 7
        assert payload.username == "admin"
        assert payload.role == "admin"
        assert payload.exp > time.time()

    def test_verify_token_checks_signature(self):
        claims = {**VALID_CLAIMS, "exp": int(time.time()) + 600}
        forged = jwt.encode(claims, "some-other-key", algorithm=settings.JWT_ALGORITHM)

        with pytest.raises(SignatureError):
            AuthService().verify_token(forged)

    def test_verify_token_validates_structure_first(self):
        with pytest.raises(FormatError):
            AuthService().verify_token("abc.def")
