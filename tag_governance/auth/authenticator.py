"""
Token acquisition for Azure Resource Manager via MSAL.

Two modes, chosen by AuthConfig.mode:
  certificate  app-only, client credential from a base64-encoded PFX
  delegated    device-code sign-in as the operator (tags are then written
               with the operator's own RBAC rights)
"""

from __future__ import annotations

import base64
import binascii
import getpass
import logging
import os
from typing import Optional

import msal
from cryptography.hazmat.primitives.hashes import SHA1
from cryptography.hazmat.primitives.serialization import Encoding, NoEncryption, PrivateFormat, pkcs12

from ..config import ARM_SCOPE, AuthConfig

logger = logging.getLogger("tag_governance.auth")

CERT_PASSWORD_ENV = "TAG_GOVERNANCE_CERT_PASSWORD"


class AuthenticationError(Exception):
    pass


def authority_url(tenant_id: str) -> str:
    return f"https://login.microsoftonline.com/{tenant_id}"


def load_pfx_credential(cert_path: str, password: str) -> dict:
    """Turn a base64 PFX file into the {"thumbprint", "private_key"} credential MSAL expects."""
    try:
        with open(cert_path, "r", encoding="utf-8") as fh:
            raw = base64.b64decode(fh.read().strip(), validate=False)
    except FileNotFoundError:
        raise AuthenticationError(f"Certificate file not found: {cert_path}")
    except binascii.Error as e:
        raise AuthenticationError(f"Certificate file is not valid base64: {e}")

    try:
        key, cert, _ = pkcs12.load_key_and_certificates(raw, password.encode("utf-8") if password else None)
    except ValueError as e:
        raise AuthenticationError(f"Failed to load certificate: {e}")
    if key is None or cert is None:
        raise AuthenticationError("Certificate file does not contain a key and certificate.")

    thumbprint = cert.fingerprint(SHA1()).hex()
    logger.info(f"Certificate loaded, thumbprint {thumbprint}")
    return {
        "thumbprint": thumbprint,
        "private_key": key.private_bytes(Encoding.PEM, PrivateFormat.PKCS8, NoEncryption()).decode("utf-8"),
    }


def _token_from(result: dict, mode: str) -> str:
    token = result.get("access_token")
    if token:
        logger.info(f"Signed in to Azure Resource Manager ({mode})")
        return token
    reason = result.get("error_description") or result.get("error") or "Unknown"
    raise AuthenticationError(f"{mode} sign-in failed: {reason}")


class Authenticator:
    """Acquires one ARM bearer token per run."""

    def __init__(self, config: AuthConfig, password_prompt=getpass.getpass):
        self.config = config
        self._prompt = password_prompt
        self._access_token: Optional[str] = None

    @property
    def access_token(self) -> Optional[str]:
        return self._access_token

    def acquire_token(self) -> str:
        flows = {"certificate": self._certificate_token, "delegated": self._device_code_token}
        if self.config.mode not in flows:
            raise AuthenticationError(f"Unknown auth mode: {self.config.mode}")
        self._access_token = flows[self.config.mode]()
        return self._access_token

    def _certificate_token(self) -> str:
        cert = self.config.certificate
        if cert is None:
            raise AuthenticationError("Certificate auth config not provided.")
        password = (
            cert.certificate_password
            or os.environ.get(CERT_PASSWORD_ENV, "")
            or self._prompt("Enter the certificate password: ")
        )
        app = msal.ConfidentialClientApplication(
            client_id=cert.client_id,
            authority=authority_url(cert.tenant_id),
            client_credential=load_pfx_credential(cert.certificate_path, password),
        )
        return _token_from(app.acquire_token_for_client(scopes=[ARM_SCOPE]), "certificate")

    def _device_code_token(self) -> str:
        delegated = self.config.delegated
        if delegated is None:
            raise AuthenticationError("Delegated auth config not provided.")
        app = msal.PublicClientApplication(
            client_id=delegated.client_id,
            authority=authority_url(delegated.tenant_id),
        )
        flow = app.initiate_device_flow(scopes=delegated.scopes)
        if "user_code" not in flow:
            raise AuthenticationError(
                f"Device code flow failed: {flow.get('error_description', 'Unknown')}"
            )
        # message carries the verification URL and the code
        print(f"\n  🔑 {flow.get('message') or flow['user_code']}\n")
        return _token_from(app.acquire_token_by_device_flow(flow), "delegated")
