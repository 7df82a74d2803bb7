import pytest

from security.passwords import PasswordHasher, password_violations


@pytest.mark.parametrize(
    "password",
    ["P@ssw0rd!", "Abcdefg1-", "xY9[long enough]", 'Quote"d1x', "Back\\slash1A"],
)
def test_strong_passwords_pass(password):
    assert password_violations(password) == []


def test_every_violated_rule_is_reported():
    violations = password_violations("abc")

    assert len(violations) == 4
    assert any("8 characters" in v for v in violations)
    assert any("uppercase" in v for v in violations)
    assert any("digit" in v for v in violations)
    assert any("special" in v for v in violations)


@pytest.mark.parametrize(
    "password,rule",
    [
        ("p@ssw0rd!", "uppercase"),
        ("P@SSW0RD!", "lowercase"),
        ("P@ssword!", "digit"),
        ("Passw0rdX", "special"),
        ("P@s0rd!", "8 characters"),
    ],
)
def test_single_rule_violations(password, rule):
    violations = password_violations(password)

    assert len(violations) == 1
    assert rule in violations[0]


def test_none_is_treated_as_empty():
    assert len(password_violations(None)) == 5


@pytest.fixture
def hasher():
    return PasswordHasher(rounds=10, max_workers=2)


async def test_hash_and_verify(hasher):
    hashed = await hasher.hash("P@ssw0rd!")

    assert hashed.startswith("$2b$10$")
    assert await hasher.verify("P@ssw0rd!", hashed)
    assert not await hasher.verify("wrong", hashed)


async def test_verify_against_corrupt_hash_is_false(hasher):
    assert not await hasher.verify("P@ssw0rd!", "not-a-bcrypt-hash")


async def test_dummy_verify_completes(hasher):
    await hasher.dummy_verify()
