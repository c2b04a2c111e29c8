"""Kosk BLS: rogue-key-safe aggregate BLS signatures.

This package implements the knowledge-of-secret-key (Kosk) protocol layer
on top of pairing-friendly curve systems. This `__init__.py` exposes the
most important classes and functions from the sub-modules.

Sub-modules:
  - kosk: Domain-separated signing, authentication and the single, multi,
    aggregate, batch and multiplicity-weighted verifiers.
  - curves: The CurveSystem abstraction with BN254 and BLS12-381
    implementations built on py_ecc.
  - registry: KeyRegistry, which admits keys only with a valid authentication.
  - aggregator: SignatureAggregator, which collects encoded contributions.
  - types / errors / constants: Data models, exceptions and domain bytes.
"""
import logging

from .constants import AUTHENTICATION_DOMAIN, SIGNING_DOMAIN
from .curves import CurveSystem, BN254Curve, BLS12381Curve, get_curve
from .errors import (
    KoskError,
    InvalidParameterError,
    InvalidScalarError,
    DecodingError,
    UnknownCurveError,
    AuthenticationError,
    UnauthorizedError,
    InvalidSignatureError,
)
from .types import SecretKey, PublicKey, Signature, MultiSig, AuthenticatedKey
from .kosk import (
    sign_with_domain,
    authenticate,
    kosk_sign,
    check_authentication,
    aggregate_authentications,
    check_aggregate_authentication,
    kosk_verify_single_signature,
    kosk_verify_multi_signature,
    kosk_verify_aggregate_signature,
    kosk_verify_batch_multi_signature,
    kosk_verify_multi_signature_with_multiplicity,
    kosk_verify_authenticated_multi_signature,
)
from .registry import KeyRegistry
from .aggregator import SignatureAggregator

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    # from .constants
    "AUTHENTICATION_DOMAIN",
    "SIGNING_DOMAIN",
    # from .curves
    "CurveSystem",
    "BN254Curve",
    "BLS12381Curve",
    "get_curve",
    # from .errors
    "KoskError",
    "InvalidParameterError",
    "InvalidScalarError",
    "DecodingError",
    "UnknownCurveError",
    "AuthenticationError",
    "UnauthorizedError",
    "InvalidSignatureError",
    # from .types
    "SecretKey",
    "PublicKey",
    "Signature",
    "MultiSig",
    "AuthenticatedKey",
    # from .kosk
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
    # from .registry
    "KeyRegistry",
    # from .aggregator
    "SignatureAggregator",
]
