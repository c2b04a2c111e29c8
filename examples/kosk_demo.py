"""Walks through Kosk BLS on both curves: registration, aggregation and batch checks."""
import time

from koskbls import (
    KeyRegistry,
    SignatureAggregator,
    authenticate,
    get_curve,
    kosk_sign,
    kosk_verify_batch_multi_signature,
)


def run_kosk_demo(curve_name: str, signers: int = 3) -> None:
    curve = get_curve(curve_name)
    print("=" * 70)
    print(f"Kosk BLS on {curve.name}")
    print("=" * 70)

    keys = [curve.generate_keypair() for _ in range(signers)]

    # 1. Every signer proves knowledge of its secret key before it may sign.
    registry = KeyRegistry(curve)
    for i, (sk, pk) in enumerate(keys, start=1):
        key_id = registry.register(pk, authenticate(curve, sk))
        print(f"  signer {i} registered: {key_id.hex()[:32]}...")

    # 2. Collect encoded contributions on a common message; signer 1 counts twice.
    message = b"milestone-1"
    aggregator = SignatureAggregator(curve, message, registry=registry)
    contributions = [(sk, pk) for sk, pk in keys] + [keys[0]]
    start = time.time()
    for sk, pk in contributions:
        aggregator.add(curve.marshal_public_key(pk), curve.marshal_signature(kosk_sign(curve, sk, message)))
    print(f"\n  multiplicity: {aggregator.multiplicity()}")
    print(f"  weighted multi-signature valid: {aggregator.verify()} ({time.time() - start:.3f} s)")

    # 3. Two independent multi-signatures, checked as one batch.
    msgs = [b"entry-a", b"entry-b"]
    key_sets = [[pk for _, pk in keys[:2]], [pk for _, pk in keys[1:]]]
    aggsigs = [
        curve.aggregate_signatures([kosk_sign(curve, sk, msgs[0]) for sk, _ in keys[:2]]),
        curve.aggregate_signatures([kosk_sign(curve, sk, msgs[1]) for sk, _ in keys[1:]]),
    ]
    start = time.time()
    ok = kosk_verify_batch_multi_signature(curve, aggsigs, key_sets, msgs)
    print(f"  batch of {len(msgs)} multi-signatures valid: {ok} ({time.time() - start:.3f} s)\n")


if __name__ == "__main__":
    run_kosk_demo("bls12_381")
    run_kosk_demo("bn254")
