"""Service-account authentication without an SDK."""

from docsheet.auth.signer import CredentialSigner, load_service_credential
from docsheet.auth.token_exchange import TokenExchanger, fetch_access_token

__all__ = [
    "CredentialSigner",
    "TokenExchanger",
    "fetch_access_token",
    "load_service_credential",
]
