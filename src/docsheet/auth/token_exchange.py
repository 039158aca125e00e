"""OAuth2 JWT-bearer exchange: signed assertion in, bearer token out.

One exchange per outer request. Nothing is cached and nothing is retried; an
exchange failure propagates to the caller as ``AuthExchangeError``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import httpx

from docsheet.auth.signer import CredentialSigner
from docsheet.constants import JWT_BEARER_GRANT_TYPE, TOKEN_URI
from docsheet.core.types import AccessToken
from docsheet.exceptions import AuthExchangeError, excerpt
from docsheet.telemetry import TelemetryContext
from docsheet.utils import borrowed_client

if TYPE_CHECKING:
    from docsheet.core.types import ServiceCredential
    from docsheet.telemetry import TelemetryContextProtocol

log = logging.getLogger(__name__)


class TokenExchanger:
    """Trades a signed assertion for a bearer access token."""

    def __init__(
        self,
        http_client: httpx.AsyncClient | None = None,
        *,
        telemetry: TelemetryContextProtocol | None = None,
    ) -> None:
        self._http_client = http_client
        self._telemetry = telemetry or TelemetryContext()

    async def exchange(self, assertion: str, token_uri: str = TOKEN_URI) -> AccessToken:
        """POST the assertion to ``token_uri`` and return the access token.

        Raises:
            AuthExchangeError: The endpoint reported an error, answered with
                something other than a token, or could not be reached.
        """
        form = {"grant_type": JWT_BEARER_GRANT_TYPE, "assertion": assertion}
        with self._telemetry("auth.exchange"):
            async with borrowed_client(self._http_client) as client:
                try:
                    response = await client.post(token_uri, data=form)
                except httpx.HTTPError as e:
                    raise AuthExchangeError(
                        f"Token exchange request failed: {e}"
                    ) from e

        return self._parse_token_response(response)

    def _parse_token_response(self, response: httpx.Response) -> AccessToken:
        try:
            body: Any = response.json()
        except ValueError:
            raise AuthExchangeError(
                f"Token endpoint returned a non-JSON body (HTTP {response.status_code})",
                excerpt=excerpt(response.text),
            ) from None

        if not isinstance(body, dict):
            raise AuthExchangeError(
                "Token endpoint returned an unexpected body",
                excerpt=excerpt(response.text),
            )

        if body.get("error"):
            description = body.get("error_description") or body["error"]
            log.warning(
                "Token exchange rejected (HTTP %s): %s",
                response.status_code,
                body["error"],
            )
            raise AuthExchangeError(
                f"Token exchange failed: {description}",
                excerpt=excerpt(str(description)),
            )

        token = body.get("access_token")
        if not response.is_success or not isinstance(token, str) or not token:
            raise AuthExchangeError(
                f"Token endpoint returned no access_token (HTTP {response.status_code})",
                excerpt=excerpt(response.text),
            )

        expires_in = body.get("expires_in")
        log.info("Obtained access token (expires in %ss)", expires_in)
        return AccessToken(
            token=token,
            expires_in=int(expires_in) if isinstance(expires_in, int | float) else None,
            token_type=body.get("token_type") or "Bearer",
        )


async def fetch_access_token(
    credential: ServiceCredential,
    *,
    http_client: httpx.AsyncClient | None = None,
    telemetry: TelemetryContextProtocol | None = None,
) -> AccessToken:
    """Sign a fresh assertion for ``credential`` and exchange it."""
    tele = telemetry or TelemetryContext()
    with tele("auth.sign"):
        assertion = CredentialSigner(credential).sign()
    exchanger = TokenExchanger(http_client, telemetry=tele)
    return await exchanger.exchange(assertion, credential.token_uri)
