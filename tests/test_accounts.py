import string

from insights.accounts import (
    RATE_LIMIT_MESSAGE,
    check_password_reset_rate_limit,
    cleanup_old_password_reset_attempts,
    generate_secure_token,
    log_password_reset_attempt,
    request_password_reset,
    validate_password_strength,
)


class RpcFailure:
    def rpc(self, fn, params=None):
        raise ConnectionError("rpc unavailable")


def test_password_strength():
    weak = validate_password_strength("abc")
    assert weak["score"] == 1
    assert weak["is_valid"] is False

    ok = validate_password_strength("Password1")
    assert ok["score"] == 4
    assert ok["is_valid"] is True

    # four classes but too short
    short = validate_password_strength("Ab1!")
    assert short["score"] == 4
    assert short["is_valid"] is False

    assert validate_password_strength("Passw0rd!")["requirements"]["special"] is True


def test_generate_secure_token():
    token = generate_secure_token()
    assert len(token) == 32
    assert set(token) <= set(string.ascii_letters + string.digits)
    assert len(generate_secure_token(8)) == 8


def test_rate_limit_errors_allow_request():
    assert check_password_reset_rate_limit(RpcFailure(), "a@example.com") == {"allowed": True}
    log_password_reset_attempt(RpcFailure(), "a@example.com")
    cleanup_old_password_reset_attempts(RpcFailure())


def test_request_password_reset_is_rate_limited(empty_backend):
    for _ in range(3):
        assert request_password_reset(empty_backend, "User@Example.com", redirect_to="http://x/reset")["sent"] is True
    blocked = request_password_reset(empty_backend, "user@example.com")
    assert blocked == {"sent": False, "message": RATE_LIMIT_MESSAGE}
    assert len(empty_backend.password_reset_requests) == 3
    assert empty_backend.password_reset_requests[0]["redirect_to"] == "http://x/reset"


def test_request_password_reset_rejects_bad_email(empty_backend):
    assert request_password_reset(empty_backend, "not-an-email")["sent"] is False
    assert empty_backend.password_reset_requests == []
