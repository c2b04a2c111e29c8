"""Abstract curve system consumed by the Kosk protocol layer.

A `CurveSystem` bundles everything the protocol needs from a pairing-friendly
curve: hash-to-curve, point encoding, key derivation, the hash-then-sign
primitive, group sums, scalar multiplication and the pairing equations that
back single, multi and aggregate verification.

Concrete curves only provide the group primitives (`_add`, `_multiply`,
`_pair`, ...). The signature equations are written once here:

  e(sig, g) == prod_i e(H(m_i), pk_i)

where `g` is the generator of the key group and `H` maps messages into the
signature group.
"""
from __future__ import annotations

import logging
import secrets
from abc import ABC, abstractmethod
from functools import reduce
from typing import Any, List, Optional, Sequence, Tuple

from koskbls.errors import InvalidScalarError
from koskbls.types import HashFunction, Point, SecretKey, PublicKey, Signature

logger = logging.getLogger(__name__)


class CurveSystem(ABC):
    """Pairing-friendly curve with signatures in one group and keys in the other."""

    #: Canonical name used by `koskbls.curves.get_curve`.
    name: str = ""

    def __init__(self, dst: bytes) -> None:
        """
        Args:
            dst: Domain separation tag for the default hash-to-curve.

        Raises:
            ValueError: If the tag is empty or longer than 255 bytes.
        """
        if not dst or len(dst) > 255:
            raise ValueError(f"DST length must be between 1 and 255 bytes (got {len(dst)}).")
        self.dst = dst

    def __repr__(self) -> str:
        return f"{type(self).__name__}(dst={self.dst!r})"

    # --- Group primitives supplied by each curve ---

    @property
    @abstractmethod
    def curve_order(self) -> int:
        """Order of the prime-order groups (the scalar field size)."""

    @property
    @abstractmethod
    def key_generator(self) -> Point:
        """Generator of the public key group."""

    @property
    @abstractmethod
    def signature_identity(self) -> Point:
        """Identity element of the signature group."""

    @property
    @abstractmethod
    def key_identity(self) -> Point:
        """Identity element of the public key group."""

    @abstractmethod
    def _add(self, p: Point, q: Point) -> Point:
        ...

    @abstractmethod
    def _multiply(self, p: Point, n: int) -> Point:
        ...

    @abstractmethod
    def _pair(self, sig_point: Point, key_point: Point) -> Any:
        """Pairs a signature-group point with a key-group point.

        The result may skip the final exponentiation; `_final_exponentiate`
        is always applied before two pairing values are compared.
        """

    @abstractmethod
    def _final_exponentiate(self, value: Any) -> Any:
        ...

    @abstractmethod
    def hash_to_point(self, msg: bytes) -> Point:
        """Default hash-to-curve into the signature group, using `self.dst`."""

    @abstractmethod
    def marshal_public_key(self, pk: PublicKey) -> bytes:
        ...

    @abstractmethod
    def marshal_signature(self, sig: Signature) -> bytes:
        ...

    @abstractmethod
    def unmarshal_public_key(self, data: bytes) -> PublicKey:
        """Decodes a public key, raising `DecodingError` for invalid input."""

    @abstractmethod
    def unmarshal_signature(self, data: bytes) -> Signature:
        """Decodes a signature, raising `DecodingError` for invalid input."""

    @abstractmethod
    def equal(self, p: Point, q: Point) -> bool:
        """Group equality, independent of the point representation."""

    # --- Keys ---

    def _check_scalar(self, sk: int) -> None:
        if isinstance(sk, bool) or not isinstance(sk, int):
            raise InvalidScalarError(f"Secret key must be an int, got {type(sk).__name__}")
        if not 0 < sk < self.curve_order:
            raise InvalidScalarError("Secret key must be in the range [1, curve_order - 1]")

    def load_public_key(self, sk: SecretKey) -> PublicKey:
        """Derives the public key `sk * g` in the key group."""
        self._check_scalar(sk)
        return PublicKey(self._multiply(self.key_generator, sk))

    def generate_keypair(self) -> Tuple[SecretKey, PublicKey]:
        """Generates a key pair with a secret key uniform in [1, curve_order-1]."""
        sk = SecretKey(secrets.randbelow(self.curve_order - 1) + 1)
        return sk, self.load_public_key(sk)

    def is_identity_key(self, pk: PublicKey) -> bool:
        """True for the key-group identity, the public key of the excluded secret 0."""
        return self.equal(pk, self.key_identity)

    def _has_identity_key(self, keys: Sequence[PublicKey]) -> bool:
        if any(self.is_identity_key(pk) for pk in keys):
            logger.debug("Rejecting the identity as a public key")
            return True
        return False

    # --- Signing and verification ---

    def sign(self, sk: SecretKey, msg: bytes, hash_fn: Optional[HashFunction] = None) -> Signature:
        """Signs `msg` as `sk * H(msg)`.

        Raises:
            InvalidScalarError: If `sk` is not in [1, curve_order).
        """
        self._check_scalar(sk)
        h = (hash_fn or self.hash_to_point)(msg)
        return Signature(self._multiply(h, sk))

    def verify_single_signature(
        self,
        sig: Signature,
        pk: PublicKey,
        msg: bytes,
        hash_fn: Optional[HashFunction] = None,
    ) -> bool:
        """Checks e(sig, g) == e(H(msg), pk).

        The identity key is rejected: with the identity signature it would
        satisfy the equation for every message.
        """
        if self._has_identity_key([pk]):
            return False
        return self._pairing_check(sig, [pk], [msg], hash_fn)

    def verify_multi_signature(
        self,
        aggsig: Signature,
        keys: Sequence[PublicKey],
        msg: bytes,
        hash_fn: Optional[HashFunction] = None,
    ) -> bool:
        """Checks a signature made by every key in `keys` on the same message.

        Bilinearity turns sum_i e(H(msg), pk_i) into e(H(msg), sum_i pk_i),
        so the keys are summed first and only two pairings are evaluated.
        """
        if not keys or self._has_identity_key(keys):
            return False
        return self._pairing_check(aggsig, [self.aggregate_keys(keys)], [msg], hash_fn)

    def verify_aggregate_signature(
        self,
        aggsig: Signature,
        keys: Sequence[PublicKey],
        msgs: Sequence[bytes],
        hash_fn: Optional[HashFunction] = None,
        allow_duplicates: bool = False,
    ) -> bool:
        """Checks an aggregate of signatures where key i signed msgs[i].

        Plain BLS is only secure here when every message is distinct, so
        duplicates are rejected unless `allow_duplicates` is set.

        Raises:
            ValueError: If the number of keys and messages differ.
        """
        if len(keys) != len(msgs):
            raise ValueError("Number of public keys and messages must be equal.")
        if not keys or self._has_identity_key(keys):
            return False
        if not allow_duplicates and len(set(msgs)) != len(msgs):
            logger.debug("Rejecting aggregate signature over duplicate messages")
            return False
        return self._pairing_check(aggsig, keys, msgs, hash_fn)

    def _pairing_check(
        self,
        sig: Signature,
        keys: Sequence[PublicKey],
        msgs: Sequence[bytes],
        hash_fn: Optional[HashFunction],
    ) -> bool:
        hash_fn = hash_fn or self.hash_to_point
        lhs = self._pair(sig, self.key_generator)
        rhs = None
        # Accumulate the product of pairings on the right-hand side.
        for pk, msg in zip(keys, msgs):
            term = self._pair(hash_fn(msg), pk)
            rhs = term if rhs is None else rhs * term
        return self._final_exponentiate(lhs) == self._final_exponentiate(rhs)

    # --- Aggregation ---

    def aggregate_signatures(self, sigs: Sequence[Signature]) -> Signature:
        """Sums signatures; the empty sum is the signature-group identity."""
        return Signature(reduce(self._add, sigs, self.signature_identity))

    def aggregate_keys(self, keys: Sequence[PublicKey]) -> PublicKey:
        """Sums public keys; the empty sum is the key-group identity."""
        return PublicKey(reduce(self._add, keys, self.key_identity))

    def scale_points(self, points: Sequence[Point], scalars: Sequence[int]) -> List[Point]:
        """Multiplies points[i] by scalars[i].

        Raises:
            ValueError: If the lengths differ or a scalar is negative or not
                an int.
        """
        if len(points) != len(scalars):
            raise ValueError("Number of points and scalars must be equal.")
        scaled = []
        for point, scalar in zip(points, scalars):
            if isinstance(scalar, bool) or not isinstance(scalar, int) or scalar < 0:
                raise ValueError(f"Scalars must be non-negative ints, got {scalar!r}")
            scaled.append(self._multiply(point, scalar))
        return scaled
