"""
Authentication module — Supports certificate-based and delegated interactive auth.
Uses MSAL for token acquisition against Microsoft Identity Platform, scoped to
Azure Resource Manager.
"""

from __future__ import annotations

import base64
import getpass
import logging
import os

from cryptography.hazmat.primitives.serialization import pkcs12, Encoding, PrivateFormat, NoEncryption
from cryptography.hazmat.primitives.hashes import SHA1
import msal

from ..config import ARM_SCOPES, AuthConfig

logger = logging.getLogger("webapp_backup_audit.auth")

CERT_PASSWORD_ENV = "WEBAPP_AUDIT_CERT_PASSWORD"


class AuthenticationError(Exception):
    """Raised when authentication fails."""
    pass


def normalize_thumbprint(value: str) -> str:
    """Strip separators and case so portal and OpenSSL thumbprints compare equal."""
    return value.replace(":", "").replace(" ", "").lower()


class Authenticator:
    """
    Handles MSAL-based authentication for Azure Resource Manager.
    Supports:
      - Certificate-based app-only authentication (tenant id, client id, certificate thumbprint)
      - Delegated interactive authentication (device code flow)
    """

    def __init__(self, config: AuthConfig):
        self.config = config

    async def acquire_token(self) -> str:
        """Acquire an access token based on configured auth mode."""
        if self.config.mode == "certificate":
            return self._acquire_certificate_token()
        elif self.config.mode == "delegated":
            return self._acquire_delegated_token()
        else:
            raise AuthenticationError(f"Unknown auth mode: {self.config.mode}")

    def _load_certificate(self) -> tuple[str, str]:
        """Load the base64 PFX and return (private_key_pem, thumbprint)."""
        cert_config = self.config.certificate
        if not cert_config:
            raise AuthenticationError("Certificate auth config not provided.")

        cert_path = cert_config.certificate_path
        password = cert_config.certificate_password
        if not password:
            password = os.environ.get(CERT_PASSWORD_ENV, "")
        if not password:
            password = getpass.getpass("Enter the certificate password: ")

        try:
            with open(cert_path, "r") as f:
                cert_base64 = f.read().strip()

            cert_bytes = base64.b64decode(cert_base64)
            password_bytes = password.encode("utf-8") if password else None

            private_key, certificate, _ = pkcs12.load_key_and_certificates(
                cert_bytes, password_bytes
            )
            if private_key is None or certificate is None:
                raise ValueError("PFX does not contain both a private key and a certificate")

            private_key_pem = private_key.private_bytes(
                Encoding.PEM, PrivateFormat.PKCS8, NoEncryption()
            ).decode("utf-8")
            thumbprint = certificate.fingerprint(SHA1()).hex()

        except FileNotFoundError:
            raise AuthenticationError(f"Certificate file not found: {cert_path}")
        except Exception as e:
            raise AuthenticationError(f"Failed to load certificate: {e}")

        expected = normalize_thumbprint(cert_config.thumbprint)
        if expected and expected != thumbprint:
            raise AuthenticationError(
                f"Certificate thumbprint mismatch: expected {expected}, "
                f"certificate at {cert_path} has {thumbprint}"
            )

        logger.info(f"Certificate loaded. Thumbprint: {thumbprint}")
        return private_key_pem, thumbprint

    def _acquire_certificate_token(self) -> str:
        """Acquire token using certificate-based client credentials."""
        cert_config = self.config.certificate
        if not cert_config:
            raise AuthenticationError("Certificate auth config not provided.")

        logger.info("Authenticating with certificate-based app credentials...")
        private_key_pem, thumbprint = self._load_certificate()

        app = msal.ConfidentialClientApplication(
            client_id=cert_config.client_id,
            authority=f"https://login.microsoftonline.com/{cert_config.tenant_id}",
            client_credential={
                "thumbprint": thumbprint,
                "private_key": private_key_pem,
            },
        )

        result = app.acquire_token_for_client(scopes=ARM_SCOPES)

        if "access_token" in result:
            logger.info("Certificate authentication successful.")
            return result["access_token"]
        else:
            error = result.get("error_description", result.get("error", "Unknown"))
            raise AuthenticationError(f"Certificate auth failed: {error}")

    def _acquire_delegated_token(self) -> str:
        """Acquire token using delegated (device code) flow."""
        deleg_config = self.config.delegated
        if not deleg_config:
            raise AuthenticationError("Delegated auth config not provided.")

        logger.info("Initiating device code authentication flow...")

        app = msal.PublicClientApplication(
            client_id=deleg_config.client_id,
            authority=f"https://login.microsoftonline.com/{deleg_config.tenant_id}",
        )

        flow = app.initiate_device_flow(scopes=deleg_config.scopes)
        if "user_code" not in flow:
            raise AuthenticationError(
                f"Device code flow failed: {flow.get('error_description', 'Unknown')}"
            )

        print(f"\n{'='*60}")
        print(f"  To sign in, open: {flow['verification_uri']}")
        print(f"  Enter code: {flow['user_code']}")
        print(f"{'='*60}\n")

        result = app.acquire_token_by_device_flow(flow)

        if "access_token" in result:
            logger.info("Delegated authentication successful.")
            return result["access_token"]
        else:
            error = result.get("error_description", result.get("error", "Unknown"))
            raise AuthenticationError(f"Delegated auth failed: {error}")
