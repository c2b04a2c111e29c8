"""Domain bytes and default hash-to-curve tags for Kosk BLS.

Every message that reaches a curve's hash-then-sign primitive is prefixed
with exactly one of the two domain bytes below. A public key is only ever
signed under ``AUTHENTICATION_DOMAIN`` by its owner, and every other
signature carries ``SIGNING_DOMAIN``, so no signature handed out in the
application domain can double as someone else's authentication.
"""

# Prefix for proofs of knowledge of the secret key.
AUTHENTICATION_DOMAIN: bytes = b"\x00"
# Prefix for every application-level signature.
SIGNING_DOMAIN: bytes = b"\x01"

# Hash-to-curve domain separation tags (RFC 9380 DST).
BN254_DST: bytes = b"BLS_SIG_BN254G1_XMD:KECCAK-256_SSWU_RO_KOSK_"
BLS12_381_DST: bytes = b"BLS_SIG_BLS12381G2_XMD:SHA-256_SSWU_RO_KOSK_"

__all__ = [
    "AUTHENTICATION_DOMAIN",
    "SIGNING_DOMAIN",
    "BN254_DST",
    "BLS12_381_DST",
]
