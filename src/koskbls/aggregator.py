"""Collects encoded signature contributions on one message into a MultiSig."""
from __future__ import annotations

import logging
import time
from typing import Dict, List, Optional, Tuple, Union

from eth_typing import BLSPubkey, BLSSignature

from koskbls.curves.base import CurveSystem
from koskbls.errors import InvalidParameterError, InvalidSignatureError, UnauthorizedError
from koskbls.kosk import kosk_verify_multi_signature_with_multiplicity, kosk_verify_single_signature
from koskbls.registry import KeyRegistry
from koskbls.types import HashFunction, MultiSig, PublicKey, Signature

logger = logging.getLogger(__name__)

EncodedKey = Union[BLSPubkey, bytes]
EncodedSignature = Union[BLSSignature, bytes]


class SignatureAggregator:
    """Aggregates Kosk signatures from many signers on a common message.

    A signer may contribute more than once (e.g. one contribution per share
    of weight it holds); the aggregator counts contributions per key and
    verifies the result with multiplicity-weighted verification.
    """

    def __init__(
        self,
        curve: CurveSystem,
        message: bytes,
        registry: Optional[KeyRegistry] = None,
        verify_contributions: bool = True,
        hash_fn: Optional[HashFunction] = None,
    ) -> None:
        """
        Args:
            curve: The curve system signatures and keys are encoded for.
            message: The common message, without any domain prefix.
            registry: If given, only keys registered there may contribute.
            verify_contributions: Check each contribution's signature on `add`.
            hash_fn: Optional custom hash-to-curve function.
        """
        if registry is not None and registry.curve is not curve:
            raise InvalidParameterError("Registry belongs to a different curve system")
        self._curve = curve
        self._message = bytes(message)
        self._registry = registry
        self._verify_contributions = verify_contributions
        self._hash_fn = hash_fn
        self._signers: Dict[bytes, Tuple[PublicKey, int]] = {}
        self._signature: Signature = curve.signature_identity

    @staticmethod
    def aggregate(curve: CurveSystem, sigs: List[EncodedSignature]) -> BLSSignature:
        """Sums encoded signatures into one encoded signature.

        Args:
            curve: The curve system the signatures are encoded for.
            sigs: The encoded signatures.

        Returns:
            The encoded aggregate signature.

        Raises:
            InvalidParameterError: If no signatures are given or one of them
                cannot be decoded.
        """
        if not sigs:
            raise InvalidParameterError("No signatures provided for aggregation")
        start = time.perf_counter()
        try:
            points = [curve.unmarshal_signature(sig) for sig in sigs]
        except ValueError as e:
            raise InvalidParameterError(f"Signature aggregation failed: {e}") from e
        agg = BLSSignature(curve.marshal_signature(curve.aggregate_signatures(points)))
        logger.debug("Aggregated %d signatures in %.6f s", len(sigs), time.perf_counter() - start)
        return agg

    def _decode(self, public_key: EncodedKey, signature: EncodedSignature) -> Tuple[PublicKey, Signature]:
        try:
            return self._curve.unmarshal_public_key(public_key), self._curve.unmarshal_signature(signature)
        except ValueError as e:
            raise InvalidParameterError(f"Invalid contribution: {e}") from e

    def add(self, public_key: EncodedKey, signature: EncodedSignature) -> int:
        """Adds one signature contribution.

        Args:
            public_key: The encoded public key of the signer.
            signature: The encoded Kosk signature on the aggregator's message.

        Returns:
            The number of contributions from this key so far.

        Raises:
            InvalidParameterError: If the key or signature cannot be decoded.
            UnauthorizedError: If a registry is set and the key is not in it.
            InvalidSignatureError: If contributions are verified and this one
                does not verify.
        """
        pk, sig = self._decode(public_key, signature)
        key_id = self._curve.marshal_public_key(pk)
        if self._registry is not None and not self._registry.is_registered(pk):
            raise UnauthorizedError(f"Public key {key_id.hex()} is not registered")
        if self._verify_contributions and not kosk_verify_single_signature(
            self._curve, pk, self._message, sig, hash_fn=self._hash_fn
        ):
            raise InvalidSignatureError("Contribution does not verify", key_id)

        _, count = self._signers.get(key_id, (pk, 0))
        self._signers[key_id] = (pk, count + 1)
        self._signature = self._curve.aggregate_signatures([self._signature, sig])
        logger.debug("Contribution %d from %s", count + 1, key_id.hex())
        return count + 1

    @property
    def message(self) -> bytes:
        return self._message

    @property
    def signature(self) -> Signature:
        return self._signature

    def keys(self) -> List[PublicKey]:
        return [pk for pk, _ in self._signers.values()]

    def multiplicity(self) -> List[int]:
        """Contribution counts, in the same order as `keys()`."""
        return [count for _, count in self._signers.values()]

    def build(self) -> MultiSig:
        """Returns the collected multi-signature.

        If any key contributed more than once, verify the result together
        with `multiplicity()` rather than with `MultiSig.verify`.

        Raises:
            InvalidParameterError: If nothing has been added.
        """
        if not self._signers:
            raise InvalidParameterError("No contributions to build a multi-signature from")
        return MultiSig(signature=self._signature, keys=self.keys(), message=self._message)

    def verify(self) -> bool:
        """Verifies the collected aggregate with multiplicity weighting."""
        if not self._signers:
            return False
        return kosk_verify_multi_signature_with_multiplicity(
            self._curve, self._signature, self.keys(), self.multiplicity(), self._message, hash_fn=self._hash_fn
        )

    def __len__(self) -> int:
        return len(self._signers)


__all__ = ["SignatureAggregator"]
