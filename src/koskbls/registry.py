"""An in-memory registry of authenticated public keys.

Multi-signature verification is only safe over keys whose authentication has
been checked. `KeyRegistry` is the place that check happens: a key gets in
only with a valid authentication, and `SignatureAggregator` can refuse
contributions from anything not registered.

Keys are stored by their canonical encoding. A registry is not synchronised
and belongs to a single thread.
"""
from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional

from koskbls.curves.base import CurveSystem
from koskbls.errors import AuthenticationError
from koskbls.kosk import aggregate_authentications, check_aggregate_authentication, check_authentication
from koskbls.types import AuthenticatedKey, HashFunction, PublicKey, Signature

logger = logging.getLogger(__name__)


class KeyRegistry:
    """Public keys admitted after proving knowledge of their secret keys."""

    def __init__(self, curve: CurveSystem, hash_fn: Optional[HashFunction] = None) -> None:
        """
        Args:
            curve: The curve system the keys belong to.
            hash_fn: Optional custom hash-to-curve used to check authentications.
        """
        self._curve = curve
        self._hash_fn = hash_fn
        self._keys: Dict[bytes, PublicKey] = {}

    @property
    def curve(self) -> CurveSystem:
        return self._curve

    def register(self, public_key: PublicKey, authentication: Signature) -> bytes:
        """Admits a public key after checking its authentication.

        Args:
            public_key: The key to admit.
            authentication: The key's authentication.

        Returns:
            The key's canonical encoding, used as its registry id.

        Raises:
            AuthenticationError: If the authentication does not verify.
        """
        key_id = self._curve.marshal_public_key(public_key)
        if not check_authentication(self._curve, public_key, authentication, hash_fn=self._hash_fn):
            logger.warning("Rejected public key %s: invalid authentication", key_id.hex())
            raise AuthenticationError(f"Invalid authentication for public key {key_id.hex()}")
        self._keys[key_id] = public_key
        logger.info("Registered public key %s", key_id.hex())
        return key_id

    def register_many(self, entries: Iterable[AuthenticatedKey]) -> List[bytes]:
        """Admits several keys, checking all authentications with one aggregate check.

        Either every key is admitted or none is.

        Raises:
            AuthenticationError: If the aggregated authentications do not verify.
        """
        entries = list(entries)
        if not entries:
            return []
        keys = [entry.public_key for entry in entries]
        aggregated = aggregate_authentications(self._curve, [entry.authentication for entry in entries])
        if not check_aggregate_authentication(self._curve, keys, aggregated, hash_fn=self._hash_fn):
            logger.warning("Rejected batch of %d public keys: invalid authentication", len(keys))
            raise AuthenticationError(f"Invalid authentication in batch of {len(keys)} public keys")
        key_ids = []
        for pk in keys:
            key_id = self._curve.marshal_public_key(pk)
            self._keys[key_id] = pk
            key_ids.append(key_id)
        logger.info("Registered %d public keys", len(key_ids))
        return key_ids

    def is_registered(self, public_key: PublicKey) -> bool:
        return self._curve.marshal_public_key(public_key) in self._keys

    def remove(self, public_key: PublicKey) -> None:
        """Drops a key; unknown keys are ignored."""
        self._keys.pop(self._curve.marshal_public_key(public_key), None)

    def keys(self) -> List[PublicKey]:
        return list(self._keys.values())

    def __contains__(self, public_key: PublicKey) -> bool:
        return self.is_registered(public_key)

    def __len__(self) -> int:
        return len(self._keys)


__all__ = ["KeyRegistry"]
