from catchgame.backend.security import generate_token, identity_for, issue_identity, verify_identity


def test_identity_for_is_deterministic_for_same_inputs() -> None:
    token = "player-token"
    salt = "local-dev-salt"

    first = identity_for(token, salt)
    second = identity_for(token, salt)

    assert first == second
    assert len(first) == 64
    assert identity_for(token, "other-salt") != first


def test_verify_identity_accepts_valid_and_rejects_invalid_token() -> None:
    salt = "local-dev-salt"
    expected = identity_for("authority-token", salt)

    assert verify_identity("authority-token", expected, salt) is True
    assert verify_identity("wrong-token", expected, salt) is False


def test_generate_token_returns_non_empty_random_value() -> None:
    first = generate_token()
    second = generate_token()

    assert first
    assert second
    assert first != second


def test_issue_identity_pairs_token_with_its_identity() -> None:
    created = issue_identity("salt")

    assert created.identity == identity_for(created.token, "salt")
