from __future__ import annotations

import pytest

from pill_pal.auth.provider import MockSmsAuthProvider, is_valid_phone
from pill_pal.errors import ValidationError
from pill_pal.web_sessions import WebSessionStore


@pytest.mark.parametrize(
    "phone,expected",
    [
        ("13800000000", True),
        ("19912345678", True),
        ("12800000000", False),
        ("1380000000", False),
        ("138000000000", False),
        ("abc", False),
        ("", False),
    ],
)
def test_phone_format(phone, expected):
    assert is_valid_phone(phone) is expected


def test_verify_with_demo_code_returns_new_user():
    provider = MockSmsAuthProvider(demo_code="123456")
    provider.request_code("13800000000")
    user = provider.verify("13800000000", "123456")
    assert user.id == "13800000000"
    assert user.phone == "13800000000"
    assert user.is_new is True


def test_verify_rejects_wrong_code_and_phone():
    provider = MockSmsAuthProvider(demo_code="123456")
    with pytest.raises(ValidationError):
        provider.verify("13800000000", "000000")
    with pytest.raises(ValidationError):
        provider.verify("12345", "123456")
    with pytest.raises(ValidationError):
        provider.request_code("12345")


def test_session_slides_and_expires():
    now = [1000.0]
    sessions = WebSessionStore(ttl_seconds=60, time_source=lambda: now[0])
    info = sessions.create(user_id="13800000000")

    now[0] += 50
    assert sessions.validate_and_touch(info.session_id) == "13800000000"
    now[0] += 50
    assert sessions.validate_and_touch(info.session_id) == "13800000000"
    now[0] += 61
    assert sessions.validate_and_touch(info.session_id) is None


def test_session_cleanup_and_delete():
    now = [1000.0]
    sessions = WebSessionStore(ttl_seconds=10, time_source=lambda: now[0])
    a = sessions.create(user_id="u")
    b = sessions.create(user_id="u")
    sessions.delete(b.session_id)
    assert sessions.validate_and_touch(b.session_id) is None

    now[0] += 11
    assert sessions.cleanup_expired() == 1
    assert sessions.validate_and_touch(a.session_id) is None
