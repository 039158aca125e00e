"""Service-account credential parsing and JWT assertion signing.

Builds the self-signed RS256 assertion that Google's OAuth2 endpoint accepts
for the JWT-bearer grant, without any Google SDK.
"""

from __future__ import annotations

import base64
from collections.abc import Callable, Mapping
import json
import logging
import time
from typing import Any

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from docsheet.constants import ASSERTION_LIFETIME, CLOUD_PLATFORM_SCOPE, TOKEN_URI
from docsheet.core.types import ServiceCredential
from docsheet.exceptions import CredentialFormatError

log = logging.getLogger(__name__)

_REQUIRED_FIELDS = ("client_email", "private_key")


def _b64url(data: bytes) -> str:
    """Base64url-encode without padding."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def _compact_json(obj: Mapping[str, Any]) -> bytes:
    return json.dumps(obj, separators=(",", ":"), sort_keys=True).encode("utf-8")


def load_service_credential(
    secret: str | bytes | Mapping[str, Any] | None,
) -> ServiceCredential:
    """Parse a service-account JSON secret into a ``ServiceCredential``.

    Args:
        secret: The JSON text (or an already-decoded mapping) of a Google
            service-account key file.

    Raises:
        CredentialFormatError: The secret is absent, not a JSON object,
            misses ``client_email``/``private_key``, or holds a key that is
            not an RSA private key.
    """
    if secret is None:
        raise CredentialFormatError("Service credential is not configured")

    if isinstance(secret, Mapping):
        info: Any = dict(secret)
    else:
        if isinstance(secret, bytes):
            secret = secret.decode("utf-8", errors="replace")
        if not secret.strip():
            raise CredentialFormatError("Service credential is empty")
        try:
            info = json.loads(secret)
        except json.JSONDecodeError as e:
            # JSONDecodeError.doc holds the whole secret, so the cause is dropped
            raise CredentialFormatError(
                f"Service credential is not valid JSON (line {e.lineno}, column {e.colno})"
            ) from None

    if not isinstance(info, dict):
        raise CredentialFormatError(
            f"Service credential must be a JSON object, got {type(info).__name__}"
        )

    missing = [
        field
        for field in _REQUIRED_FIELDS
        if not isinstance(info.get(field), str) or not info[field].strip()
    ]
    if missing:
        raise CredentialFormatError(
            f"Service credential is missing required field(s): {', '.join(missing)}"
        )

    # Keys pasted into single-line env vars arrive with literal "\n" escapes
    private_key = info["private_key"].replace("\\n", "\n")
    _load_rsa_key(private_key)

    credential = ServiceCredential(
        issuer=info["client_email"].strip(),
        private_key=private_key,
        token_uri=info.get("token_uri") or TOKEN_URI,
        project_id=info.get("project_id"),
        private_key_id=info.get("private_key_id"),
    )
    log.debug("Loaded service credential for %s", credential.issuer)
    return credential


def _load_rsa_key(pem: str) -> rsa.RSAPrivateKey:
    try:
        key = serialization.load_pem_private_key(pem.encode("utf-8"), password=None)
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise CredentialFormatError(
            "Service credential private_key is not a readable PEM private key"
        ) from e
    if not isinstance(key, rsa.RSAPrivateKey):
        raise CredentialFormatError(
            f"Service credential private_key must be RSA, got {type(key).__name__}"
        )
    return key


class CredentialSigner:
    """Signs short-lived JWT assertions for one service credential.

    The signer holds no mutable state; ``sign()`` may be called concurrently.
    """

    def __init__(
        self,
        credential: ServiceCredential,
        *,
        scope: str = CLOUD_PLATFORM_SCOPE,
        lifetime: int = ASSERTION_LIFETIME,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if not 0 < lifetime <= ASSERTION_LIFETIME:
            raise ValueError(
                f"lifetime must be between 1 and {ASSERTION_LIFETIME} seconds"
            )
        self.credential = credential
        self.scope = scope
        self.lifetime = lifetime
        self._clock = clock
        self._key = _load_rsa_key(credential.private_key)

    def claims(self) -> dict[str, Any]:
        now = int(self._clock())
        return {
            "iss": self.credential.issuer,
            "sub": self.credential.issuer,
            "aud": self.credential.token_uri,
            "scope": self.scope,
            "iat": now,
            "exp": now + self.lifetime,
        }

    def sign(self) -> str:
        """Return a compact ``header.payload.signature`` assertion."""
        header: dict[str, Any] = {"alg": "RS256", "typ": "JWT"}
        if self.credential.private_key_id:
            header["kid"] = self.credential.private_key_id

        signing_input = ".".join(
            (_b64url(_compact_json(header)), _b64url(_compact_json(self.claims())))
        )
        signature = self._key.sign(
            signing_input.encode("ascii"),
            padding.PKCS1v15(),
            hashes.SHA256(),
        )
        return f"{signing_input}.{_b64url(signature)}"
