"""Curve systems that back the Kosk protocol layer.

Each curve is an explicit value passed into every protocol call, so several
instantiations (different curves, or the same curve under different DSTs)
can coexist in one process.

Available Curves:
  - bn256: `BN254Curve`, BN254 / alt_bn128 with signatures on G1.
  - bls12_381: `BLS12381Curve`, BLS12-381 with signatures on G2.
"""
from typing import Dict, Optional, Type

from .base import CurveSystem
from .bn256 import BN254Curve
from .bls12_381 import BLS12381Curve
from koskbls.errors import UnknownCurveError

CURVES: Dict[str, Type[CurveSystem]] = {
    "bn254": BN254Curve,
    "bn256": BN254Curve,
    "alt_bn128": BN254Curve,
    "bls12_381": BLS12381Curve,
    "bls12-381": BLS12381Curve,
}


def get_curve(name: str, dst: Optional[bytes] = None) -> CurveSystem:
    """Builds a curve system by name.

    Args:
        name: Case-insensitive curve name, e.g. "bn254" or "bls12_381".
        dst: Optional hash-to-curve domain separation tag; each curve has its
            own default.

    Returns:
        A new CurveSystem instance.

    Raises:
        UnknownCurveError: If the name is not a supported curve.
    """
    try:
        curve_cls = CURVES[name.lower()]
    except KeyError:
        raise UnknownCurveError(f"Unsupported curve: {name!r}") from None
    return curve_cls() if dst is None else curve_cls(dst)


__all__ = [
    "CURVES",
    "CurveSystem",
    "BN254Curve",
    "BLS12381Curve",
    "get_curve",
]
