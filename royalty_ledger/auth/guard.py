# royalty_ledger/auth/guard.py
import logging
import threading
from abc import ABC, abstractmethod
from typing import Dict, Iterable, Optional, Set

from royalty_ledger.core.encoding import b64url_decode
from royalty_ledger.crypto.keys import SIGNATURE_BYTES, PrincipalKeyPair, SignedInvocation, public_key_from_principal
from royalty_ledger.errors import Unauthorized

logger = logging.getLogger(__name__)


class AuthorizationGuard(ABC):
    """Decides whether the current caller has proven it acts as a principal."""

    @abstractmethod
    def require_caller(self, principal: str, operation: Optional[str] = None) -> None:
        """Raise Unauthorized unless the caller is proven to be `principal`
        for `operation` (when the guard binds proofs to operations)."""


class StaticGuard(AuthorizationGuard):
    """Trusts a fixed set of principals that were authenticated elsewhere."""

    def __init__(self, principals: Iterable[str] = ()):
        self._principals: Set[str] = set(principals)

    def allow(self, principal: str) -> None:
        self._principals.add(principal)

    def revoke(self, principal: str) -> None:
        self._principals.discard(principal)

    def require_caller(self, principal: str, operation: Optional[str] = None) -> None:
        if principal not in self._principals:
            raise Unauthorized(f"Caller is not authenticated as {principal}")


class SignatureGuard(AuthorizationGuard):
    """
    Accepts principals that presented a valid Ed25519-signed invocation.

    Self-certifying principals ("ed25519:<pubkey>") are checked against the key
    they embed; any other principal must appear in `trusted_keys`
    (principal -> base64url public key).

    An accepted invocation is single-use: `require_caller` consumes it, and
    only for the operation it was signed for.
    """

    def __init__(self, trusted_keys: Optional[Dict[str, str]] = None):
        self.trusted_keys = dict(trusted_keys or {})
        self._pending: Dict[str, SignedInvocation] = {}
        self._lock = threading.Lock()

    def _key_for(self, principal: str) -> PrincipalKeyPair:
        pub_b64 = self.trusted_keys.get(principal) or public_key_from_principal(principal)
        if pub_b64 is None:
            raise Unauthorized(f"No trusted key for principal '{principal}'")
        try:
            return PrincipalKeyPair.from_public_b64url(pub_b64)
        except ValueError as e:
            raise Unauthorized(f"Key loading failed for '{principal}': {e}") from e

    def authorize(self, invocation: SignedInvocation) -> str:
        """Verify a signed invocation and hold it until its operation runs."""
        verifier = self._key_for(invocation.principal)
        try:
            signature = b64url_decode(invocation.proof_value, SIGNATURE_BYTES)
        except ValueError as e:
            raise Unauthorized(f"Malformed signature: {e}") from e
        if not verifier.verify_bytes(signature, invocation.signing_bytes()):
            logger.debug("Rejected invocation %s for %s: bad signature", invocation.operation, invocation.principal)
            raise Unauthorized(f"Invalid signature for principal '{invocation.principal}'")
        with self._lock:
            self._pending[invocation.principal] = invocation
        return invocation.principal

    def pending(self, principal: str) -> Optional[SignedInvocation]:
        with self._lock:
            return self._pending.get(principal)

    def reset(self) -> None:
        with self._lock:
            self._pending.clear()

    def require_caller(self, principal: str, operation: Optional[str] = None) -> None:
        with self._lock:
            invocation = self._pending.get(principal)
            if invocation is None:
                raise Unauthorized(f"Caller has not proven control of {principal}")
            if operation is not None and invocation.operation != operation:
                raise Unauthorized(
                    f"Signature from {principal} covers '{invocation.operation}', not '{operation}'"
                )
            del self._pending[principal]
