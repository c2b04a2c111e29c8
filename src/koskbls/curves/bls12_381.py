"""BLS12-381 curve system for Kosk BLS.

Uses the "minimal-pubkey-size" layout: public keys are 48-byte compressed G1
points and signatures are 96-byte compressed G2 points. Hash-to-G2 is the
RFC 9380 suite over SHA-256 provided by py_ecc, keyed with this curve's DST,
and secret keys come from the IETF KeyGen.

Points are projective tuples from `py_ecc.optimized_bls12_381`, so equality
must go through `eq` rather than `==`.
"""
from __future__ import annotations

import hashlib
import secrets
from typing import Tuple

from eth_typing import BLSPubkey, BLSSignature
from py_ecc.bls.ciphersuites import BaseG2Ciphersuite
from py_ecc.bls.g2_primitives import (
    G1_to_pubkey,
    G2_to_signature,
    pubkey_to_G1,
    signature_to_G2,
)
from py_ecc.bls.hash_to_curve import hash_to_G2
from py_ecc.optimized_bls12_381 import (
    G1,
    Z1,
    Z2,
    add,
    curve_order,
    eq,
    is_inf,
    multiply,
    pairing,
    final_exponentiate,
)

from koskbls.constants import BLS12_381_DST
from koskbls.curves.base import CurveSystem
from koskbls.errors import DecodingError
from koskbls.types import Point, PublicKey, SecretKey, Signature

PUBKEY_SIZE = 48
SIGNATURE_SIZE = 96


def _in_subgroup(point: Point) -> bool:
    return is_inf(multiply(point, curve_order))


class BLS12381Curve(CurveSystem):
    """BLS12-381 with public keys on G1 and signatures on G2."""

    name = "bls12_381"

    def __init__(self, dst: bytes = BLS12_381_DST) -> None:
        super().__init__(dst)

    @property
    def curve_order(self) -> int:
        return curve_order

    @property
    def key_generator(self) -> Point:
        return G1

    @property
    def signature_identity(self) -> Point:
        return Z2

    @property
    def key_identity(self) -> Point:
        return Z1

    def _add(self, p1: Point, p2: Point) -> Point:
        return add(p1, p2)

    def _multiply(self, pt: Point, n: int) -> Point:
        return multiply(pt, n)

    def _pair(self, sig_point: Point, key_point: Point):
        # The Miller loops are multiplied first; one final exponentiation
        # per side happens in `_final_exponentiate`.
        return pairing(sig_point, key_point, final_exponentiate=False)

    def _final_exponentiate(self, value):
        return final_exponentiate(value)

    def hash_to_point(self, msg: bytes) -> Point:
        return hash_to_G2(msg, self.dst, hashlib.sha256)

    def generate_keypair(self) -> Tuple[SecretKey, PublicKey]:
        """Generates a key pair from 32 bytes of fresh input keying material."""
        sk = SecretKey(BaseG2Ciphersuite.KeyGen(secrets.token_bytes(32)))
        return sk, self.load_public_key(sk)

    def marshal_public_key(self, pk: PublicKey) -> bytes:
        return bytes(G1_to_pubkey(pk))

    def marshal_signature(self, sig: Signature) -> bytes:
        return bytes(G2_to_signature(sig))

    def unmarshal_public_key(self, data: bytes) -> PublicKey:
        """Decodes a 48-byte compressed G1 public key.

        Raises:
            DecodingError: If the length, flags or coordinates are invalid, or
                the point lies outside the prime-order subgroup.
        """
        if len(data) != PUBKEY_SIZE:
            raise DecodingError(f"Public key must be {PUBKEY_SIZE} bytes, but got {len(data)}")
        try:
            point = pubkey_to_G1(BLSPubkey(bytes(data)))
        except ValueError as e:
            raise DecodingError(f"Invalid G1 public key: {e}") from e
        if not _in_subgroup(point):
            raise DecodingError("Public key is not in the G1 subgroup")
        return PublicKey(point)

    def unmarshal_signature(self, data: bytes) -> Signature:
        """Decodes a 96-byte compressed G2 signature.

        Raises:
            DecodingError: If the length, flags or coordinates are invalid, or
                the point lies outside the prime-order subgroup.
        """
        if len(data) != SIGNATURE_SIZE:
            raise DecodingError(f"Signature must be {SIGNATURE_SIZE} bytes, but got {len(data)}")
        try:
            point = signature_to_G2(BLSSignature(bytes(data)))
        except ValueError as e:
            raise DecodingError(f"Invalid G2 signature: {e}") from e
        if not _in_subgroup(point):
            raise DecodingError("Signature is not in the G2 subgroup")
        return Signature(point)

    def equal(self, p1: Point, p2: Point) -> bool:
        return eq(p1, p2)


__all__ = [
    "BLS12381Curve",
    "PUBKEY_SIZE",
    "SIGNATURE_SIZE",
]
