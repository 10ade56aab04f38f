from app.core.security import (
    create_access_token,
    decode_token,
    generate_api_key,
    hash_api_key,
    hash_password,
    key_display_prefix,
    verify_password,
)


def test_password_hash_round_trip():
    hashed = hash_password("correct horse")
    assert hashed != "correct horse"
    assert verify_password("correct horse", hashed)
    assert not verify_password("wrong horse", hashed)


def test_verify_password_with_garbage_hash():
    assert verify_password("anything", "not-a-bcrypt-hash") is False


def test_access_token_claims():
    decoded = decode_token(create_access_token("42"))
    assert decoded["sub"] == "42"
    assert decoded["type"] == "access"
    assert decoded["exp"] > decoded["iat"]


def test_api_key_hash_is_deterministic_sha256():
    key = generate_api_key()
    assert hash_api_key(key) == hash_api_key(key)
    assert len(hash_api_key(key)) == 64
    assert hash_api_key(key) != hash_api_key(generate_api_key())


def test_key_display_prefix():
    assert key_display_prefix("pak_abcdEFGH12345678901234567890ab") == "pak_abcd"
