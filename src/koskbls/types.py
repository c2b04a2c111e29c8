"""Defines the core data structures and Pydantic models for Kosk BLS.

Points are the raw `py_ecc` tuples of whichever curve system produced them,
so the models accept them as opaque values and never try to coerce them.
The protocol functions in `koskbls.kosk` operate on these models and on the
bare points alike.
"""
from __future__ import annotations

from typing import Any, Callable, List, NewType, Optional, TYPE_CHECKING

from pydantic import BaseModel, ConfigDict

if TYPE_CHECKING:
    from koskbls.curves.base import CurveSystem

# --- Type Aliases ---
SecretKey = NewType("SecretKey", int)
# An affine or projective py_ecc point; None is the BN254 point at infinity.
Point = Any
PublicKey = NewType("PublicKey", tuple)
Signature = NewType("Signature", tuple)
HashFunction = Callable[[bytes], Point]


class MultiSig(BaseModel):
    """A claim that a set of keys jointly signed one message.

    The signature is the group sum of each key's Kosk signature on
    `message`. Every key is expected to have been authenticated before the
    bundle is trusted; `verify` does not re-check authentications.

    Attributes:
        signature: The aggregated signature point.
        keys: The public key points of all signers.
        message: The common message, without any domain prefix.
    """
    model_config = ConfigDict(frozen=True)

    signature: Any
    keys: List[Any]
    message: bytes

    def verify(self, curve: CurveSystem, hash_fn: Optional[HashFunction] = None) -> bool:
        """Checks the bundle with Kosk multi-signature verification.

        Args:
            curve: The curve system the points belong to.
            hash_fn: Optional custom hash-to-curve function.

        Returns:
            True if the signature is valid for every key, False otherwise.
        """
        from koskbls.kosk import kosk_verify_multi_signature

        return kosk_verify_multi_signature(curve, self.signature, self.keys, self.message, hash_fn=hash_fn)


class AuthenticatedKey(BaseModel):
    """A public key together with its proof of knowledge of the secret key.

    Attributes:
        public_key: The public key point.
        authentication: The signature over the key's own encoding in the
            authentication domain, as produced by `koskbls.kosk.authenticate`.
    """
    model_config = ConfigDict(frozen=True)

    public_key: Any
    authentication: Any


__all__ = [
    "SecretKey",
    "Point",
    "PublicKey",
    "Signature",
    "HashFunction",
    "MultiSig",
    "AuthenticatedKey",
]
