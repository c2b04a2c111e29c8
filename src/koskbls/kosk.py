"""Knowledge-of-secret-key (Kosk) BLS signatures.

Kosk defends BLS aggregation against the rogue public key attack: before a
key takes part in a multi-signature, its owner proves knowledge of the secret
key by signing the key's own encoding (an *authentication*).

A plain signature on the public key is not enough. Given a signing oracle
for (pk1, sk1), an attacker can pick pkA = -pk1 + x*g and ask pk1 to sign
pkA's encoding; then -sig_pk1(pkA) + x*H(pkA) is a valid authentication for
pkA without anyone knowing skA. To rule this out, every message signed here
carries a one-byte domain prefix:

  - authentications sign 0x00 || encode(pk)
  - application signatures sign 0x01 || msg

Since a key only ever signs its own encoding under 0x00, nothing it hands
out can serve as someone else's authentication. The price is that Kosk
signatures do not interoperate with plain BLS. In return authentications are
aggregatable: they are signatures on distinct messages (distinct keys).

Every verification routine fails closed. Malformed points, mismatched
lengths and failed pairing checks all return False; signing routines let the
curve system's errors propagate.

The multi, aggregate and batch verifiers do not check authentications. They
are only safe for keys whose authentication was verified beforehand, e.g. by
`koskbls.registry.KeyRegistry` or `kosk_verify_authenticated_multi_signature`.
"""
from __future__ import annotations

import functools
import logging
from typing import Callable, List, Optional, Sequence

from koskbls.constants import AUTHENTICATION_DOMAIN, SIGNING_DOMAIN
from koskbls.curves.base import CurveSystem
from koskbls.types import AuthenticatedKey, HashFunction, Point, PublicKey, SecretKey, Signature

logger = logging.getLogger(__name__)

# What py_ecc and the curve code raise for malformed input.
_VERIFY_ERRORS = (ValueError, TypeError, AttributeError, AssertionError, ZeroDivisionError, IndexError)


def _fail_closed(fn: Callable[..., bool]) -> Callable[..., bool]:
    """Turns errors raised on malformed input into a False result."""

    @functools.wraps(fn)
    def wrapper(*args, **kwargs) -> bool:
        try:
            return bool(fn(*args, **kwargs))
        except _VERIFY_ERRORS as e:
            logger.debug("%s rejected malformed input: %s", fn.__name__, e)
            return False

    return wrapper


def _tag(domain: bytes, msg: bytes) -> bytes:
    return domain + bytes(msg)


# --- Domain-Separated Signing ---

def sign_with_domain(
    curve: CurveSystem,
    domain: bytes,
    sk: SecretKey,
    msg: bytes,
    hash_fn: Optional[HashFunction] = None,
) -> Signature:
    """Signs `domain || msg`.

    Args:
        curve: The curve system to sign on.
        domain: A one-byte domain prefix.
        sk: The signer's secret key.
        msg: The message to sign.
        hash_fn: Optional hash-to-curve function; defaults to the curve's.

    Returns:
        The signature point.

    Raises:
        ValueError: If `domain` is not exactly one byte.
        InvalidScalarError: From the curve, if `sk` is out of range.
    """
    if len(domain) != 1:
        raise ValueError("Domain prefix must be exactly one byte.")
    return curve.sign(sk, _tag(domain, msg), hash_fn)


def authenticate(curve: CurveSystem, sk: SecretKey, hash_fn: Optional[HashFunction] = None) -> Signature:
    """Produces the authentication for the public key of `sk`.

    The authentication is a signature on `0x00 || encode(pk)`.
    """
    msg = curve.marshal_public_key(curve.load_public_key(sk))
    return sign_with_domain(curve, AUTHENTICATION_DOMAIN, sk, msg, hash_fn)


def kosk_sign(curve: CurveSystem, sk: SecretKey, msg: bytes, hash_fn: Optional[HashFunction] = None) -> Signature:
    """Signs an application message as `0x01 || msg`."""
    return sign_with_domain(curve, SIGNING_DOMAIN, sk, msg, hash_fn)


# --- Authentication ---

@_fail_closed
def check_authentication(
    curve: CurveSystem,
    pubkey: PublicKey,
    authentication: Signature,
    hash_fn: Optional[HashFunction] = None,
) -> bool:
    """Checks that `authentication` proves knowledge of the secret key of `pubkey`."""
    msg = _tag(AUTHENTICATION_DOMAIN, curve.marshal_public_key(pubkey))
    return curve.verify_single_signature(authentication, pubkey, msg, hash_fn)


def aggregate_authentications(curve: CurveSystem, authentications: Sequence[Signature]) -> Signature:
    """Sums authentications into one point checkable by `check_aggregate_authentication`."""
    return curve.aggregate_signatures(authentications)


@_fail_closed
def check_aggregate_authentication(
    curve: CurveSystem,
    pubkeys: Sequence[PublicKey],
    aggregated: Signature,
    hash_fn: Optional[HashFunction] = None,
) -> bool:
    """Checks a sum of authentications against every key in `pubkeys` at once.

    Each key's authentication message is distinct, so this is an aggregate
    verification with one pairing per key instead of two.
    """
    if not pubkeys:
        logger.debug("Empty key list for aggregate authentication")
        return False
    msgs = [_tag(AUTHENTICATION_DOMAIN, curve.marshal_public_key(pk)) for pk in pubkeys]
    return curve.verify_aggregate_signature(aggregated, pubkeys, msgs, hash_fn, allow_duplicates=True)


# --- Verification ---

@_fail_closed
def kosk_verify_single_signature(
    curve: CurveSystem,
    pubkey: PublicKey,
    msg: bytes,
    sig: Signature,
    hash_fn: Optional[HashFunction] = None,
) -> bool:
    """Checks a single Kosk signature on `msg`."""
    return curve.verify_single_signature(sig, pubkey, _tag(SIGNING_DOMAIN, msg), hash_fn)


@_fail_closed
def kosk_verify_multi_signature(
    curve: CurveSystem,
    aggsig: Signature,
    keys: Sequence[PublicKey],
    msg: bytes,
    hash_fn: Optional[HashFunction] = None,
) -> bool:
    """Checks that every key in `keys` signed `msg` and `aggsig` is their sum.

    Precondition: every key has been authenticated. Without that, this is
    open to the rogue public key attack.
    """
    if not keys:
        logger.debug("Empty key list for multi-signature")
        return False
    return curve.verify_multi_signature(aggsig, keys, _tag(SIGNING_DOMAIN, msg), hash_fn)


@_fail_closed
def kosk_verify_aggregate_signature(
    curve: CurveSystem,
    aggsig: Signature,
    keys: Sequence[PublicKey],
    msgs: Sequence[bytes],
    hash_fn: Optional[HashFunction] = None,
) -> bool:
    """Checks that keys[i] signed msgs[i] for every i, and `aggsig` is the sum.

    Messages may repeat; with authenticated keys Kosk does not need the
    distinct-message rule of plain BLS.
    """
    if len(keys) != len(msgs):
        logger.debug("Key/message count mismatch: %d != %d", len(keys), len(msgs))
        return False
    if not keys:
        return False
    tagged = [_tag(SIGNING_DOMAIN, m) for m in msgs]
    return curve.verify_aggregate_signature(aggsig, keys, tagged, hash_fn, allow_duplicates=True)


@_fail_closed
def kosk_verify_batch_multi_signature(
    curve: CurveSystem,
    aggsigs: Sequence[Signature],
    pubkey_sets: Sequence[Sequence[PublicKey]],
    msgs: Sequence[bytes],
    hash_fn: Optional[HashFunction] = None,
) -> bool:
    """Checks several multi-signatures with a single aggregate verification.

    Entry i claims that every key in pubkey_sets[i] signed msgs[i] and that
    aggsigs[i] is their sum. All signatures are summed, each key set is
    collapsed into one key, and the result is verified as an aggregate
    signature. This costs one pairing per entry plus one, instead of two per
    entry.
    """
    if not (len(aggsigs) == len(pubkey_sets) == len(msgs)):
        logger.debug(
            "Batch length mismatch: %d signatures, %d key sets, %d messages",
            len(aggsigs), len(pubkey_sets), len(msgs),
        )
        return False
    if any(not keys for keys in pubkey_sets):
        logger.debug("Batch entry with an empty key set")
        return False
    # Collapsing the sets would hide an identity key from the aggregate check.
    if any(curve.is_identity_key(pk) for keys in pubkey_sets for pk in keys):
        logger.debug("Identity public key in batch entry")
        return False
    aggsig = curve.aggregate_signatures(aggsigs)
    keys = [curve.aggregate_keys(key_set) for key_set in pubkey_sets]
    return kosk_verify_aggregate_signature(curve, aggsig, keys, msgs, hash_fn=hash_fn)


def _valid_multiplicity(curve: CurveSystem, multiplicity: Sequence[int]) -> bool:
    for m in multiplicity:
        if isinstance(m, bool) or not isinstance(m, int):
            logger.debug("Multiplicity must be an int, got %r", m)
            return False
        if m < 0 or m >= curve.curve_order:
            logger.debug("Multiplicity out of range: %d", m)
            return False
    return True


@_fail_closed
def kosk_verify_multi_signature_with_multiplicity(
    curve: CurveSystem,
    aggsig: Signature,
    keys: Sequence[PublicKey],
    multiplicity: Optional[Sequence[int]],
    msg: bytes,
    hash_fn: Optional[HashFunction] = None,
) -> bool:
    """Checks a multi-signature where key i's signature was summed multiplicity[i] times.

    By bilinearity, e(H(m), k * pk) == e(H(m), pk)^k, so each key is scaled
    by its count and the scaled keys are checked as a normal multi-signature.
    A count of zero drops the signer. Negative counts, and counts of
    `curve_order` or more, fail closed. The identity key is rejected even
    with a count of zero.
    """
    if multiplicity is None:
        return kosk_verify_multi_signature(curve, aggsig, keys, msg, hash_fn=hash_fn)
    if len(keys) != len(multiplicity):
        logger.debug("Key/multiplicity count mismatch: %d != %d", len(keys), len(multiplicity))
        return False
    if not _valid_multiplicity(curve, multiplicity):
        return False
    if any(curve.is_identity_key(pk) for pk in keys):
        logger.debug("Identity public key in weighted multi-signature")
        return False
    weighted = [(pk, m) for pk, m in zip(keys, multiplicity) if m]
    scaled: List[Point] = curve.scale_points([pk for pk, _ in weighted], [m for _, m in weighted])
    return kosk_verify_multi_signature(curve, aggsig, scaled, msg, hash_fn=hash_fn)


@_fail_closed
def kosk_verify_authenticated_multi_signature(
    curve: CurveSystem,
    aggsig: Signature,
    authenticated_keys: Sequence[AuthenticatedKey],
    msg: bytes,
    hash_fn: Optional[HashFunction] = None,
) -> bool:
    """Checks the signers' authentications, then their multi-signature.

    Unlike `kosk_verify_multi_signature` this carries no precondition: the
    authentications are verified here, in aggregate, before the signature.
    """
    if not authenticated_keys:
        return False
    keys = [entry.public_key for entry in authenticated_keys]
    aggregated = aggregate_authentications(curve, [entry.authentication for entry in authenticated_keys])
    if not check_aggregate_authentication(curve, keys, aggregated, hash_fn=hash_fn):
        logger.debug("Aggregate authentication failed for %d keys", len(keys))
        return False
    return kosk_verify_multi_signature(curve, aggsig, keys, msg, hash_fn=hash_fn)


__all__ = [
    "sign_with_domain",
    "authenticate",
    "kosk_sign",
    "check_authentication",
    "aggregate_authentications",
    "check_aggregate_authentication",
    "kosk_verify_single_signature",
    "kosk_verify_multi_signature",
    "kosk_verify_aggregate_signature",
    "kosk_verify_batch_multi_signature",
    "kosk_verify_multi_signature_with_multiplicity",
    "kosk_verify_authenticated_multi_signature",
]
