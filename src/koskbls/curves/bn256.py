"""BN254 (alt_bn128) curve system for Kosk BLS.

Signatures live on G1 and public keys on G2, matching the layout expected by
the EVM pairing precompiles. Points are the affine tuples of `py_ecc.bn128`,
with None as the point at infinity.

Encodings:
  - G1 (signatures): 64 bytes, uncompressed big-endian x || y. The all-zero
    string encodes infinity, since (0, 0) is not on y^2 = x^3 + 3.
  - G2 (public keys): 64 bytes, compressed x-coordinate with the IETF flag
    bits in the top of the first byte.

Hash-to-G1 expands the message with expand_message_xmd over Keccak-256
(RFC 9380 §5.3.1) and maps each field element with the SWU family map for
BN curves, adding the two images. Since A = 0 on BN254 this is the
Shallue-van de Woestijne variant (RFC 9380 §6.6.1) rather than Simplified
SWU, which needs A != 0.

`py_ecc.bn128.pairing` always applies the final exponentiation, so
`BN254Curve._final_exponentiate` does nothing.
"""
from __future__ import annotations

from typing import Tuple

from Crypto.Hash import keccak
from py_ecc.bn128 import (
    FQ, FQ2,
    G2, Z1, Z2,
    b, b2, curve_order,
    add, multiply, pairing, is_on_curve,
    field_modulus as p
)

from koskbls.constants import BN254_DST
from koskbls.curves.base import CurveSystem
from koskbls.errors import DecodingError
from koskbls.types import Point, PublicKey, Signature

PointG1 = Tuple[FQ, FQ]
PointG2 = Tuple[FQ2, FQ2]

G1_SIZE = 64
G2_SIZE = 64
_G2_INFINITY = bytes([0xc0]) + bytes(G2_SIZE - 1)

# Keccak-256 rate in bytes, the s_in_bytes of expand_message_xmd.
_KECCAK_BLOCK = 136
_KECCAK_DIGEST = 32

# --- Constants of the G1 map for y^2 = x^3 + 3 with Z = 1 ---
_B = 3
_Z = 1
_C1 = FQ(_B + _Z ** 3)                 # g(Z)
_C2 = FQ((p - 1) // 2)                 # -Z / 2
_neg_gz = -(_Z ** 3 + _B) % p
_c3 = pow(_neg_gz * (3 * _Z * _Z) % p, (p + 1) // 4, p)
if _c3 % 2 == 1:
    _c3 = p - _c3                      # sgn0(c3) must be 0
_C3 = FQ(_c3)                          # sqrt(-g(Z) * 3Z^2)
_C4 = FQ(4 * _neg_gz * pow(3 * _Z * _Z, p - 2, p) % p)   # -4 g(Z) / 3Z^2


# --- Hash-to-Curve ---

def _keccak256(data: bytes) -> bytes:
    k = keccak.new(digest_bits=256)
    k.update(data)
    return k.digest()


def expand_message_xmd(msg: bytes, dst: bytes, len_in_bytes: int) -> bytes:
    """Expands `msg` into `len_in_bytes` uniform bytes (RFC 9380 §5.3.1).

    Args:
        msg: The input message.
        dst: The domain separation tag, 1-255 bytes long.
        len_in_bytes: Number of bytes to produce.

    Returns:
        The expanded byte string.

    Raises:
        ValueError: If the DST length or the requested length is invalid.
    """
    if not dst or len(dst) > 255:
        raise ValueError(f"DST length must be between 1 and 255 bytes (got {len(dst)}).")
    ell = -(-len_in_bytes // _KECCAK_DIGEST)
    if ell > 255 or len_in_bytes > 65535:
        raise ValueError("Requested output is too long for expand_message_xmd.")
    dst_prime = dst + bytes([len(dst)])
    z_pad = bytes(_KECCAK_BLOCK)
    l_i_b_str = len_in_bytes.to_bytes(2, "big")

    b_0 = _keccak256(z_pad + msg + l_i_b_str + b"\x00" + dst_prime)
    b_i = _keccak256(b_0 + b"\x01" + dst_prime)
    uniform = b_i
    for i in range(2, ell + 1):
        chained = bytes(x ^ y for x, y in zip(b_0, b_i))
        b_i = _keccak256(chained + bytes([i]) + dst_prime)
        uniform += b_i
    return uniform[:len_in_bytes]


def _hash_to_field(msg: bytes, dst: bytes) -> Tuple[int, int]:
    """Hashes a message to the two field elements u0, u1."""
    uniform = expand_message_xmd(msg, dst, 96)
    return int.from_bytes(uniform[:48], "big") % p, int.from_bytes(uniform[48:], "big") % p


def _map_to_g1(u: int) -> PointG1:
    """Maps a field element to a point on G1.

    Raises:
        ValueError: If u is outside the field.
    """
    if u < 0 or u >= p:
        raise ValueError("Field element out of range")
    u_fq = FQ(u)
    tv1 = u_fq * u_fq * _C1
    tv2 = FQ(1) + tv1
    tv1 = FQ(1) - tv1
    tv3_inv = _inv_fq(tv1 * tv2)
    tv5 = u_fq * tv1 * tv3_inv * _C3
    tv8 = tv2 * tv2 * tv3_inv
    candidates = (_C2 - tv5, _C2 + tv5, FQ(_Z) + _C4 * (tv8 * tv8))

    # The first candidate whose g(x) is a square wins; the third always is.
    for x in candidates:
        try:
            y = _sqrt_fq(x * x * x + FQ(_B))
        except ValueError:
            continue
        if (u % 2) != (y.n % 2):
            y = -y
        return x, y
    raise ValueError("No candidate x-coordinate is on the curve")


def hash_to_g1(msg: bytes, dst: bytes = BN254_DST) -> PointG1:
    """Hashes a message to a point on the BN254 G1 curve.

    Args:
        msg: The message to hash.
        dst: The domain separation tag.

    Returns:
        A PointG1 representing the hash of the message.
    """
    u0, u1 = _hash_to_field(msg, dst)
    point = add(_map_to_g1(u0), _map_to_g1(u1))
    if not is_on_curve(point, b):
        raise ValueError("hash_to_g1 produced point not on curve")
    return point


# --- Point Encodings ---

def serialize_g1(point: PointG1) -> bytes:
    """Serializes a G1 point as 64 uncompressed bytes."""
    if point is None:
        return bytes(G1_SIZE)
    return point[0].n.to_bytes(32, "big") + point[1].n.to_bytes(32, "big")


def deserialize_g1(buf: bytes) -> PointG1:
    """Deserializes 64 uncompressed bytes into a G1 point.

    Raises:
        DecodingError: If the length is wrong or the point is not on G1.
    """
    if len(buf) != G1_SIZE:
        raise DecodingError(f"Signature must be {G1_SIZE} bytes, but got {len(buf)}")
    if buf == bytes(G1_SIZE):
        return Z1
    x = int.from_bytes(buf[:32], "big")
    y = int.from_bytes(buf[32:], "big")
    if x >= p or y >= p:
        raise DecodingError("Signature coordinate is not a field element")
    point = (FQ(x), FQ(y))
    if not is_on_curve(point, b):
        raise DecodingError("Deserialized signature point is not on the G1 curve")
    return point


def compress_g2(pk: PointG2) -> bytes:
    """Serializes a G2 point into the 64-byte compressed format.

    The top bits of the first byte carry metadata: 0xc0 alone marks the
    point at infinity, 0x80 marks compression and 0x40 carries the sign of
    the y-coordinate.
    """
    if pk is None:
        return _G2_INFINITY
    x0, x1 = _fq2_ints(pk[0])
    raw = x0.to_bytes(32, "big") + x1.to_bytes(32, "big")
    first_byte = raw[0] | 0x80
    if _sgn0(pk[1]):
        first_byte |= 0x40
    return bytes([first_byte]) + raw[1:]


def decompress_g2(buf: bytes) -> PointG2:
    """Deserializes a 64-byte compressed G2 point.

    Raises:
        DecodingError: If the buffer is not 64 bytes, if the compression bit
            is not set, or if the recovered point is not on the G2 curve or
            not in its prime-order subgroup.
    """
    if len(buf) != G2_SIZE:
        raise DecodingError("Input must be 64 bytes.")
    if buf == _G2_INFINITY:
        return Z2
    if not (buf[0] & 0x80):
        raise DecodingError("Compression bit is not set.")

    sign_bit = (buf[0] & 0x40) >> 6
    x_bytes = bytes([buf[0] & 0x3F]) + buf[1:]
    x0 = int.from_bytes(x_bytes[:32], "big")
    x1 = int.from_bytes(x_bytes[32:], "big")
    if x0 >= p or x1 >= p:
        raise DecodingError("Public key coordinate is not a field element")
    x = FQ2([x0, x1])

    # Solve y^2 = x^3 + b2 for y.
    try:
        y = _sqrt_fq2(x ** 3 + b2)
    except ValueError as e:
        raise DecodingError(f"Public key is not on the G2 curve: {e}") from e
    if _sgn0(y) != sign_bit:
        y = -y

    point = (x, y)
    if not is_on_curve(point, b2):
        raise DecodingError("Decompressed point is not on the curve.")
    # The G2 cofactor is not 1; reject points outside the order-r subgroup.
    if multiply(point, curve_order) is not None:
        raise DecodingError("Public key is not in the G2 subgroup")
    return point


# --- Curve System ---

class BN254Curve(CurveSystem):
    """BN254 with signatures on G1 and public keys on G2."""

    name = "bn254"

    def __init__(self, dst: bytes = BN254_DST) -> None:
        super().__init__(dst)

    @property
    def curve_order(self) -> int:
        return curve_order

    @property
    def key_generator(self) -> Point:
        return G2

    @property
    def signature_identity(self) -> Point:
        return Z1

    @property
    def key_identity(self) -> Point:
        return Z2

    def _add(self, p1: Point, p2: Point) -> Point:
        return add(p1, p2)

    def _multiply(self, pt: Point, n: int) -> Point:
        return multiply(pt, n)

    def _pair(self, sig_point: Point, key_point: Point):
        return pairing(key_point, sig_point)

    def _final_exponentiate(self, value):
        return value

    def hash_to_point(self, msg: bytes) -> Point:
        return hash_to_g1(msg, self.dst)

    def marshal_public_key(self, pk: PublicKey) -> bytes:
        return compress_g2(pk)

    def marshal_signature(self, sig: Signature) -> bytes:
        return serialize_g1(sig)

    def unmarshal_public_key(self, data: bytes) -> PublicKey:
        return PublicKey(decompress_g2(bytes(data)))

    def unmarshal_signature(self, data: bytes) -> Signature:
        return Signature(deserialize_g1(bytes(data)))

    def equal(self, p1: Point, p2: Point) -> bool:
        return p1 == p2


# --- Field Helpers ---

def _fq2_ints(z: FQ2) -> Tuple[int, int]:
    """Extracts integer coefficients from an FQ2 field element."""
    c0, c1 = z.coeffs
    return int(getattr(c0, "n", c0)), int(getattr(c1, "n", c1))


def _sgn0(z: FQ2) -> int:
    """Sign of an FQ2 element, taken from the parity of its coefficients."""
    c0, c1 = _fq2_ints(z)
    return (c1 & 1) if c1 != 0 else (c0 & 1)


def _inv_fq(x: FQ) -> FQ:
    if x.n == 0:
        raise ZeroDivisionError("Cannot invert zero in a field.")
    return FQ(pow(x.n, p - 2, p))


def _sqrt_fq(n_fq: FQ) -> FQ:
    """Square root in FQ; p = 3 (mod 4) so the root is n^((p+1)/4)."""
    n = n_fq.n
    if n == 0:
        return FQ.zero()
    if pow(n, (p - 1) // 2, p) != 1:
        raise ValueError("Not a quadratic residue")
    root = FQ(pow(n, (p + 1) // 4, p))
    if root * root != n_fq:
        raise ValueError("Failed to compute square root")
    return root


def _sqrt_fq2(v: FQ2) -> FQ2:
    """Square root in FQ2 = FQ[i] / (i^2 + 1)."""
    if v == FQ2.zero():
        return FQ2.zero()
    a, b_ = v.coeffs
    if b_ == FQ.zero():
        try:
            return FQ2([_sqrt_fq(a), FQ.zero()])
        except ValueError:
            return FQ2([FQ.zero(), _sqrt_fq(-a)])
    two_inv = FQ((p + 1) // 2)
    s = _sqrt_fq(a * a + b_ * b_)
    try:
        x = _sqrt_fq((a + s) * two_inv)
    except ValueError:
        x = _sqrt_fq((a - s) * two_inv)
    return FQ2([x, b_ * _inv_fq(x * 2)])


__all__ = [
    "BN254Curve",
    "PointG1",
    "PointG2",
    "expand_message_xmd",
    "hash_to_g1",
    "serialize_g1",
    "deserialize_g1",
    "compress_g2",
    "decompress_g2",
]
