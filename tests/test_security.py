import base64
import time

import jwt
import pytest
from cryptography.hazmat.primitives.asymmetric import rsa

from chatops.config.settings import Settings
from chatops.core.exceptions import InvalidChannelTokenError
from chatops.core.security import (
    BotFrameworkTokenVerifier,
    chat_transport_configured,
    compute_webhook_signature,
    verify_webhook_signature,
)

APP_ID = "app-id"
ISSUER = "https://api.botframework.com"
SERVICE_URL = "https://smba.trafficmanager.net/emea/"
SECRET = base64.b64encode(b"webhook-shared-secret").decode()

PRIVATE_KEY = rsa.generate_private_key(public_exponent=65537, key_size=2048)


class StaticSigningKey:
    def __init__(self, key):
        self.key = key


class StaticJwksClient:
    """Serves one public key for every token"""

    def __init__(self, public_key):
        self.public_key = public_key

    def get_signing_key_from_jwt(self, token):
        return StaticSigningKey(self.public_key)


def make_token(private_key=PRIVATE_KEY, **overrides):
    now = int(time.time())
    claims = {
        "iss": ISSUER,
        "aud": APP_ID,
        "iat": now,
        "nbf": now,
        "exp": now + 600,
        "serviceurl": SERVICE_URL,
    }
    claims.update(overrides)
    return jwt.encode(claims, private_key, algorithm="RS256")


@pytest.fixture
def verifier():
    return BotFrameworkTokenVerifier(
        app_id=APP_ID,
        issuer=ISSUER,
        jwks_url="https://login.test/keys",
        jwks_client=StaticJwksClient(PRIVATE_KEY.public_key()),
    )


def test_valid_token_returns_claims(verifier):
    claims = verifier.verify(f"Bearer {make_token()}", SERVICE_URL)

    assert claims["aud"] == APP_ID


def test_missing_bearer_is_rejected(verifier):
    with pytest.raises(InvalidChannelTokenError):
        verifier.verify(None, SERVICE_URL)
    with pytest.raises(InvalidChannelTokenError):
        verifier.verify(f"HMAC {make_token()}", SERVICE_URL)


def test_token_for_another_bot_is_rejected(verifier):
    with pytest.raises(InvalidChannelTokenError):
        verifier.verify(f"Bearer {make_token(aud='other-app')}", SERVICE_URL)


def test_token_from_another_issuer_is_rejected(verifier):
    with pytest.raises(InvalidChannelTokenError):
        verifier.verify(f"Bearer {make_token(iss='https://evil.example.com')}", SERVICE_URL)


def test_expired_token_is_rejected(verifier):
    past = int(time.time()) - 3600
    token = make_token(iat=past - 600, nbf=past - 600, exp=past)

    with pytest.raises(InvalidChannelTokenError):
        verifier.verify(f"Bearer {token}", SERVICE_URL)


def test_token_signed_with_unknown_key_is_rejected(verifier):
    forged_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)

    with pytest.raises(InvalidChannelTokenError):
        verifier.verify(f"Bearer {make_token(private_key=forged_key)}", SERVICE_URL)


def test_service_url_must_match_claim(verifier):
    with pytest.raises(InvalidChannelTokenError):
        verifier.verify(f"Bearer {make_token()}", "https://attacker.example.com/")


def test_webhook_signature_round_trip():
    body = b'{"type": "message"}'
    signature = compute_webhook_signature(SECRET, body)

    assert verify_webhook_signature(SECRET, body, f"HMAC {signature}")
    assert not verify_webhook_signature(SECRET, body + b" ", f"HMAC {signature}")
    assert not verify_webhook_signature(SECRET, body, None)


def test_webhook_verification_requires_secret():
    with pytest.raises(ValueError):
        verify_webhook_signature(None, b"{}", "HMAC anything")


def test_transport_configured_per_mode():
    assert not chat_transport_configured(Settings(chat_transport="bot_framework", microsoft_app_id=None))
    assert chat_transport_configured(
        Settings(chat_transport="bot_framework", microsoft_app_id="id", microsoft_app_password="pw")
    )
    assert not chat_transport_configured(Settings(chat_transport="outgoing_webhook", teams_webhook_secret=None))
    assert chat_transport_configured(Settings(chat_transport="outgoing_webhook", teams_webhook_secret=SECRET))
