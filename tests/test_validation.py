import pytest

from validation import is_valid_email, normalize_email


@pytest.mark.parametrize("email", ["a@b.com", "first.last+tag@mail.example.org", "x@y.co"])
def test_accepts_plain_addresses(email):
    assert is_valid_email(email)


@pytest.mark.parametrize(
    "email",
    ["", "plainaddress", "missing-domain@", "@missing-local.com", "a@b", "a b@c.com", "a@b .com", "a@@b.com", "a@b.com\n", None, 42],
)
def test_rejects_malformed_addresses(email):
    assert not is_valid_email(email)


def test_normalize_strips_and_lowercases():
    assert normalize_email("  Someone@Example.COM ") == "someone@example.com"
    assert normalize_email(None) == ""
