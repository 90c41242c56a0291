# royalty_ledger/crypto/keys.py
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey, Ed25519PublicKey
from cryptography.hazmat.primitives.serialization import Encoding, NoEncryption, PrivateFormat, PublicFormat

from royalty_ledger.core.canon import canonical_json
from royalty_ledger.core.encoding import b64url_decode, b64url_encode

PRINCIPAL_PREFIX = "ed25519:"
KEY_BYTES = 32
SIGNATURE_BYTES = 64


@dataclass(frozen=True)
class SignedInvocation:
    """A call to one ledger operation, signed by the principal making it."""
    principal: str
    operation: str
    args: Dict[str, Any] = field(default_factory=dict)
    proof_value: str = ""           # base64url Ed25519 signature over signing_bytes()

    def signing_payload(self) -> dict:
        return {"principal": self.principal, "operation": self.operation, "args": self.args}

    def signing_bytes(self) -> bytes:
        return canonical_json(self.signing_payload())


def principal_for(public_key_b64url: str) -> str:
    return PRINCIPAL_PREFIX + public_key_b64url


def public_key_from_principal(principal: str) -> Optional[str]:
    """Return the embedded public key of a self-certifying principal, else None."""
    if principal.startswith(PRINCIPAL_PREFIX):
        return principal[len(PRINCIPAL_PREFIX):]
    return None


class PrincipalKeyPair:
    """Ed25519 key pair proving control of a ledger principal.

    A key pair without a private half can only verify.
    """

    def __init__(self, public_key: Ed25519PublicKey, private_key: Optional[Ed25519PrivateKey] = None):
        self._public_key = public_key
        self._private_key = private_key

    @classmethod
    def generate(cls) -> "PrincipalKeyPair":
        private_key = Ed25519PrivateKey.generate()
        return cls(private_key.public_key(), private_key)

    @classmethod
    def from_private_b64url(cls, data: str) -> "PrincipalKeyPair":
        private_key = Ed25519PrivateKey.from_private_bytes(b64url_decode(data, KEY_BYTES))
        return cls(private_key.public_key(), private_key)

    @classmethod
    def from_public_b64url(cls, data: str) -> "PrincipalKeyPair":
        return cls(Ed25519PublicKey.from_public_bytes(b64url_decode(data, KEY_BYTES)))

    @property
    def can_sign(self) -> bool:
        return self._private_key is not None

    def public_key_b64url(self) -> str:
        raw = self._public_key.public_bytes(Encoding.Raw, PublicFormat.Raw)
        return b64url_encode(raw)

    def private_key_b64url(self) -> str:
        if self._private_key is None:
            raise ValueError("Key pair has no private key")
        raw = self._private_key.private_bytes(Encoding.Raw, PrivateFormat.Raw, NoEncryption())
        return b64url_encode(raw)

    @property
    def principal(self) -> str:
        return principal_for(self.public_key_b64url())

    def sign_bytes(self, data: bytes) -> bytes:
        if self._private_key is None:
            raise ValueError("Cannot sign with a verify-only key pair")
        return self._private_key.sign(data)

    def verify_bytes(self, signature: bytes, data: bytes) -> bool:
        try:
            self._public_key.verify(signature, data)
            return True
        except InvalidSignature:
            return False

    def sign_invocation(self, operation: str, args: Optional[Dict[str, Any]] = None,
                        principal: Optional[str] = None) -> SignedInvocation:
        """
        Sign a call to `operation`. `principal` defaults to this key's
        self-certifying principal; pass a name to sign for a named principal.
        """
        unsigned = SignedInvocation(
            principal=principal or self.principal,
            operation=operation,
            args=dict(args or {}),
        )
        signature = self.sign_bytes(unsigned.signing_bytes())
        return SignedInvocation(
            principal=unsigned.principal,
            operation=operation,
            args=unsigned.args,
            proof_value=b64url_encode(signature),
        )
