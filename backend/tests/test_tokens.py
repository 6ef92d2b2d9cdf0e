from datetime import datetime, timedelta, timezone

import jwt
import pytest

from planner.auth import InvalidToken, TokenIssuer

SECRET = 'unit-test-secret-key-long-enough-for-hs256-000'
T0 = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


def test_issue_and_verify_roundtrip():
    clock = FakeClock(T0)
    issuer = TokenIssuer(SECRET, clock=clock)
    token = issuer.issue('user-1')
    assert issuer.verify(token) == 'user-1'

    claims = jwt.decode(token, SECRET, algorithms=['HS256'], options={'verify_exp': False})
    assert claims['user_id'] == 'user-1'
    assert claims['exp'] - claims['iat'] == 30 * 24 * 3600


def test_token_expires_exactly_at_ttl():
    clock = FakeClock(T0)
    issuer = TokenIssuer(SECRET, ttl=timedelta(days=1), clock=clock)
    token = issuer.issue('user-1')

    clock.now = T0 + timedelta(days=1) - timedelta(seconds=1)
    assert issuer.verify(token) == 'user-1'

    clock.now = T0 + timedelta(days=1)
    with pytest.raises(InvalidToken):
        issuer.verify(token)


def test_wrong_secret_and_malformed_tokens_fail():
    token = TokenIssuer(SECRET).issue('user-1')
    other = TokenIssuer(SECRET + '-rotated')
    with pytest.raises(InvalidToken):
        other.verify(token)
    for bad in ('', 'abc', 'a.b.c'):
        with pytest.raises(InvalidToken):
            other.verify(bad)


def test_tampered_payload_fails_signature_check():
    issuer = TokenIssuer(SECRET)
    header, _, signature = issuer.issue('user-1').split('.')
    _, payload, _ = issuer.issue('user-2').split('.')
    with pytest.raises(InvalidToken):
        issuer.verify('.'.join([header, payload, signature]))


def test_missing_claims_and_unsigned_tokens_fail():
    issuer = TokenIssuer(SECRET)
    now = int(datetime.now(timezone.utc).timestamp())
    no_user = jwt.encode({'iat': now, 'exp': now + 60}, SECRET, algorithm='HS256')
    no_exp = jwt.encode({'user_id': 'u', 'iat': now}, SECRET, algorithm='HS256')
    unsigned = jwt.encode({'user_id': 'u', 'iat': now, 'exp': now + 60}, None, algorithm='none')
    for token in (no_user, no_exp, unsigned):
        with pytest.raises(InvalidToken):
            issuer.verify(token)


def test_empty_secret_is_refused():
    with pytest.raises(ValueError):
        TokenIssuer('')
