# tests/conftest.py
import pytest

from koskbls.curves import BN254Curve, BLS12381Curve


@pytest.fixture(scope="session")
def bn254():
    return BN254Curve()


@pytest.fixture(scope="session")
def bls12_381():
    return BLS12381Curve()


@pytest.fixture(scope="module", params=["bn254", "bls12_381"])
def curve(request):
    """Runs a test once per supported curve system."""
    return request.getfixturevalue(request.param)


@pytest.fixture(scope="module")
def keypairs(curve):
    """Three key pairs on the current curve."""
    return [curve.generate_keypair() for _ in range(3)]
