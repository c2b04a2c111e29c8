import pytest

from koskbls import kosk
from koskbls.constants import AUTHENTICATION_DOMAIN, SIGNING_DOMAIN
from koskbls.errors import InvalidScalarError
from koskbls.types import AuthenticatedKey, MultiSig


MSG = b"kosk multi-signature message"


def _flip_bit(msg: bytes) -> bytes:
    return bytes([msg[0] ^ 0x01]) + msg[1:]


def _custom_hash(curve):
    def custom_hash(data: bytes):
        return curve.hash_to_point(b"custom-prefix/" + data)

    return custom_hash


@pytest.fixture(scope="module")
def multisig(curve, keypairs):
    """All three keys sign MSG."""
    sigs = [kosk.kosk_sign(curve, sk, MSG) for sk, _ in keypairs]
    return curve.aggregate_signatures(sigs), [pk for _, pk in keypairs]


class TestDomainSeparatedSigning:

    def test_authentication_roundtrip(self, curve, keypairs):
        for sk, pk in keypairs:
            assert kosk.check_authentication(curve, pk, kosk.authenticate(curve, sk))

    def test_authentication_for_other_key_fails(self, curve, keypairs):
        (sk1, _), (_, pk2), _ = keypairs
        assert not kosk.check_authentication(curve, pk2, kosk.authenticate(curve, sk1))

    def test_single_signature_roundtrip(self, curve, keypairs):
        sk, pk = keypairs[0]
        sig = kosk.kosk_sign(curve, sk, b"hello")
        assert kosk.kosk_verify_single_signature(curve, pk, b"hello", sig)
        assert not kosk.kosk_verify_single_signature(curve, pk, b"hellp", sig)

    def test_signature_is_over_prefixed_message(self, curve, keypairs):
        sk, pk = keypairs[0]
        sig = kosk.kosk_sign(curve, sk, b"hello")
        assert curve.verify_single_signature(sig, pk, SIGNING_DOMAIN + b"hello")
        assert not curve.verify_single_signature(sig, pk, b"hello")

    def test_domains_are_disjoint(self, curve, keypairs):
        sk, pk = keypairs[0]
        encoded = curve.marshal_public_key(pk)
        auth = kosk.authenticate(curve, sk)
        app_sig = kosk.kosk_sign(curve, sk, encoded)

        assert not curve.equal(auth, app_sig)
        # An authentication is not an application signature on the key encoding...
        assert not kosk.kosk_verify_single_signature(curve, pk, encoded, auth)
        # ...and an application signature on the key encoding is not an authentication.
        assert not kosk.check_authentication(curve, pk, app_sig)

    def test_sign_with_domain_requires_one_byte(self, curve, keypairs):
        sk, _ = keypairs[0]
        with pytest.raises(ValueError, match="exactly one byte"):
            kosk.sign_with_domain(curve, b"\x00\x01", sk, b"msg")
        with pytest.raises(ValueError, match="exactly one byte"):
            kosk.sign_with_domain(curve, b"", sk, b"msg")

    def test_authenticate_matches_domain_signing(self, curve, keypairs):
        sk, pk = keypairs[0]
        expected = kosk.sign_with_domain(curve, AUTHENTICATION_DOMAIN, sk, curve.marshal_public_key(pk))
        assert curve.equal(kosk.authenticate(curve, sk), expected)

    def test_signing_propagates_curve_errors(self, curve):
        with pytest.raises(InvalidScalarError):
            kosk.kosk_sign(curve, 0, b"msg")
        with pytest.raises(InvalidScalarError):
            kosk.authenticate(curve, curve.curve_order)

    def test_custom_hash(self, curve, keypairs):
        sk, pk = keypairs[0]
        custom_hash = _custom_hash(curve)

        sig = kosk.kosk_sign(curve, sk, b"hello", hash_fn=custom_hash)
        assert kosk.kosk_verify_single_signature(curve, pk, b"hello", sig, hash_fn=custom_hash)
        assert not kosk.kosk_verify_single_signature(curve, pk, b"hello", sig)

        auth = kosk.authenticate(curve, sk, hash_fn=custom_hash)
        assert kosk.check_authentication(curve, pk, auth, hash_fn=custom_hash)
        assert not kosk.check_authentication(curve, pk, auth)


class TestRogueKeyDefense:

    def test_forged_authentication_is_rejected(self, curve, keypairs):
        sk1, pk1 = keypairs[0]
        x = 987654321
        neg_pk1 = curve.scale_points([pk1], [curve.curve_order - 1])[0]
        rogue_pk = curve.aggregate_keys([neg_pk1, curve.load_public_key(x)])
        encoded = curve.marshal_public_key(rogue_pk)

        # The victim signs the rogue key's encoding as an ordinary message.
        oracle_sig = kosk.kosk_sign(curve, sk1, encoded)
        neg_oracle_sig = curve.scale_points([oracle_sig], [curve.curve_order - 1])[0]
        forged = curve.aggregate_signatures([neg_oracle_sig, curve.sign(x, SIGNING_DOMAIN + encoded)])

        # The algebra goes through, but only in the application domain.
        assert kosk.kosk_verify_single_signature(curve, rogue_pk, encoded, forged)
        assert not kosk.check_authentication(curve, rogue_pk, forged)

    def test_unauthenticated_rogue_key_breaks_plain_multi_signature(self, curve, keypairs):
        sk1, pk1 = keypairs[0]
        x = 123456789
        neg_pk1 = curve.scale_points([pk1], [curve.curve_order - 1])[0]
        rogue_pk = curve.aggregate_keys([neg_pk1, curve.load_public_key(x)])
        forged_sig = curve.sign(x, SIGNING_DOMAIN + MSG)

        # Without the authentication precondition the forgery goes through...
        assert kosk.kosk_verify_multi_signature(curve, forged_sig, [pk1, rogue_pk], MSG)
        # ...but no valid authentication exists for the rogue key.
        entries = [
            AuthenticatedKey(public_key=pk1, authentication=kosk.authenticate(curve, sk1)),
            AuthenticatedKey(public_key=rogue_pk, authentication=kosk.authenticate(curve, x)),
        ]
        assert not kosk.kosk_verify_authenticated_multi_signature(curve, forged_sig, entries, MSG)


class TestMultiSignature:

    def test_valid(self, curve, multisig):
        aggsig, keys = multisig
        assert kosk.kosk_verify_multi_signature(curve, aggsig, keys, MSG)

    def test_key_order_is_irrelevant(self, curve, multisig):
        aggsig, keys = multisig
        assert kosk.kosk_verify_multi_signature(curve, aggsig, list(reversed(keys)), MSG)

    def test_mutated_message(self, curve, multisig):
        aggsig, keys = multisig
        assert not kosk.kosk_verify_multi_signature(curve, aggsig, keys, _flip_bit(MSG))

    def test_substituted_key(self, curve, multisig):
        aggsig, keys = multisig
        _, outsider = curve.generate_keypair()
        assert not kosk.kosk_verify_multi_signature(curve, aggsig, [keys[0], outsider, keys[2]], MSG)

    def test_missing_key(self, curve, multisig):
        aggsig, keys = multisig
        assert not kosk.kosk_verify_multi_signature(curve, aggsig, keys[:2], MSG)

    def test_empty_keys(self, curve, multisig):
        aggsig, _ = multisig
        assert not kosk.kosk_verify_multi_signature(curve, aggsig, [], MSG)

    def test_multisig_model(self, curve, multisig):
        aggsig, keys = multisig
        assert MultiSig(signature=aggsig, keys=keys, message=MSG).verify(curve)
        assert not MultiSig(signature=aggsig, keys=keys, message=_flip_bit(MSG)).verify(curve)

    def test_malformed_signature_fails_closed(self, curve, multisig):
        _, keys = multisig
        assert kosk.kosk_verify_multi_signature(curve, "garbage", keys, MSG) is False
        assert kosk.kosk_verify_single_signature(curve, keys[0], MSG, "garbage") is False

    def test_malformed_key_fails_closed(self, curve, multisig):
        aggsig, keys = multisig
        assert kosk.check_authentication(curve, "garbage", aggsig) is False
        assert kosk.kosk_verify_multi_signature(curve, aggsig, [keys[0], "garbage"], MSG) is False


class TestAggregateSignature:

    @pytest.fixture(scope="class")
    def distinct(self, curve, keypairs):
        msgs = [b"first message", b"second message", b"third message"]
        sigs = [kosk.kosk_sign(curve, sk, m) for (sk, _), m in zip(keypairs, msgs)]
        return curve.aggregate_signatures(sigs), [pk for _, pk in keypairs], msgs

    def test_valid(self, curve, distinct):
        aggsig, keys, msgs = distinct
        assert kosk.kosk_verify_aggregate_signature(curve, aggsig, keys, msgs)

    def test_swapped_messages(self, curve, distinct):
        aggsig, keys, msgs = distinct
        assert not kosk.kosk_verify_aggregate_signature(curve, aggsig, keys, [msgs[1], msgs[0], msgs[2]])

    def test_length_mismatch(self, curve, distinct):
        aggsig, keys, msgs = distinct
        assert kosk.kosk_verify_aggregate_signature(curve, aggsig, keys, msgs[:2]) is False
        assert kosk.kosk_verify_aggregate_signature(curve, aggsig, keys[:2], msgs) is False

    def test_empty(self, curve, distinct):
        aggsig, _, _ = distinct
        assert kosk.kosk_verify_aggregate_signature(curve, aggsig, [], []) is False

    def test_duplicate_messages_allowed(self, curve, multisig):
        aggsig, keys = multisig
        assert kosk.kosk_verify_aggregate_signature(curve, aggsig, keys, [MSG] * len(keys))


class TestBatchMultiSignature:

    @pytest.fixture(scope="class")
    def batch(self, curve, keypairs):
        (sk1, pk1), (sk2, pk2), (sk3, pk3) = keypairs
        msg_a, msg_b = b"batch entry a", b"batch entry b"
        sig_a = curve.aggregate_signatures([kosk.kosk_sign(curve, sk1, msg_a), kosk.kosk_sign(curve, sk2, msg_a)])
        sig_b = curve.aggregate_signatures([kosk.kosk_sign(curve, sk2, msg_b), kosk.kosk_sign(curve, sk3, msg_b)])
        return [sig_a, sig_b], [[pk1, pk2], [pk2, pk3]], [msg_a, msg_b]

    def test_valid_batch_matches_individual(self, curve, batch):
        aggsigs, key_sets, msgs = batch
        for sig, keys, msg in zip(aggsigs, key_sets, msgs):
            assert kosk.kosk_verify_multi_signature(curve, sig, keys, msg)
        assert kosk.kosk_verify_batch_multi_signature(curve, aggsigs, key_sets, msgs)

    def test_corrupted_entry(self, curve, keypairs, batch):
        aggsigs, key_sets, msgs = batch
        corrupted = [aggsigs[0], kosk.kosk_sign(curve, keypairs[2][0], b"something else")]
        assert not kosk.kosk_verify_multi_signature(curve, corrupted[1], key_sets[1], msgs[1])
        assert not kosk.kosk_verify_batch_multi_signature(curve, corrupted, key_sets, msgs)

    def test_swapped_messages(self, curve, batch):
        aggsigs, key_sets, msgs = batch
        assert not kosk.kosk_verify_batch_multi_signature(curve, aggsigs, key_sets, list(reversed(msgs)))

    def test_length_mismatch(self, curve, batch):
        aggsigs, key_sets, msgs = batch
        assert kosk.kosk_verify_batch_multi_signature(curve, aggsigs, key_sets, msgs[:1]) is False
        assert kosk.kosk_verify_batch_multi_signature(curve, aggsigs[:1], key_sets, msgs) is False

    def test_empty_key_set(self, curve, batch):
        aggsigs, key_sets, msgs = batch
        assert kosk.kosk_verify_batch_multi_signature(curve, aggsigs, [key_sets[0], []], msgs) is False


class TestMultiplicity:

    @pytest.fixture(scope="class")
    def weighted(self, curve, keypairs):
        """Signer 1 counted three times, signer 2 once."""
        (sk1, pk1), (sk2, pk2), _ = keypairs
        s1 = kosk.kosk_sign(curve, sk1, MSG)
        s2 = kosk.kosk_sign(curve, sk2, MSG)
        return curve.aggregate_signatures([s1, s1, s1, s2]), [pk1, pk2], s2

    def test_none_behaves_as_multi_signature(self, curve, multisig):
        aggsig, keys = multisig
        assert kosk.kosk_verify_multi_signature_with_multiplicity(curve, aggsig, keys, None, MSG)
        assert not kosk.kosk_verify_multi_signature_with_multiplicity(curve, aggsig, keys, None, _flip_bit(MSG))

    def test_weighted(self, curve, weighted):
        aggsig, keys, _ = weighted
        assert kosk.kosk_verify_multi_signature_with_multiplicity(curve, aggsig, keys, [3, 1], MSG)

    def test_equivalent_to_prescaled_keys(self, curve, weighted):
        aggsig, keys, _ = weighted
        prescaled = [curve.scale_points([keys[0]], [3])[0], keys[1]]
        assert kosk.kosk_verify_multi_signature_with_multiplicity(curve, aggsig, prescaled, None, MSG)

        off_by_one = [curve.scale_points([keys[0]], [2])[0], keys[1]]
        assert not kosk.kosk_verify_multi_signature_with_multiplicity(curve, aggsig, off_by_one, None, MSG)

    def test_off_by_one(self, curve, weighted):
        aggsig, keys, _ = weighted
        assert not kosk.kosk_verify_multi_signature_with_multiplicity(curve, aggsig, keys, [2, 1], MSG)
        assert not kosk.kosk_verify_multi_signature_with_multiplicity(curve, aggsig, keys, [4, 1], MSG)
        assert not kosk.kosk_verify_multi_signature_with_multiplicity(curve, aggsig, keys, [3, 2], MSG)

    def test_zero_drops_signer(self, curve, weighted):
        _, keys, s2 = weighted
        assert kosk.kosk_verify_multi_signature_with_multiplicity(curve, s2, keys, [0, 1], MSG)

    def test_length_mismatch(self, curve, weighted):
        aggsig, keys, _ = weighted
        assert kosk.kosk_verify_multi_signature_with_multiplicity(curve, aggsig, keys, [3], MSG) is False
        assert kosk.kosk_verify_multi_signature_with_multiplicity(curve, aggsig, keys, [3, 1, 1], MSG) is False

    @pytest.mark.parametrize("multiplicity", [[-1, 1], [3, -1], [True, 1], [3.0, 1], ["3", 1]])
    def test_invalid_values_fail_closed(self, curve, weighted, multiplicity):
        aggsig, keys, _ = weighted
        assert kosk.kosk_verify_multi_signature_with_multiplicity(curve, aggsig, keys, multiplicity, MSG) is False

    def test_overflowing_value_fails_closed(self, curve, weighted):
        aggsig, keys, _ = weighted
        # 3 + curve_order acts like 3 in the group, but is rejected outright.
        multiplicity = [3 + curve.curve_order, 1]
        assert kosk.kosk_verify_multi_signature_with_multiplicity(curve, aggsig, keys, multiplicity, MSG) is False


class TestAuthentications:

    @pytest.fixture(scope="class")
    def entries(self, curve, keypairs):
        return [AuthenticatedKey(public_key=pk, authentication=kosk.authenticate(curve, sk)) for sk, pk in keypairs]

    def test_aggregate_authentication(self, curve, entries):
        keys = [e.public_key for e in entries]
        aggregated = kosk.aggregate_authentications(curve, [e.authentication for e in entries])
        assert kosk.check_aggregate_authentication(curve, keys, aggregated)
        assert not kosk.check_aggregate_authentication(curve, keys[:2], aggregated)
        assert kosk.check_aggregate_authentication(curve, [], aggregated) is False

    def test_aggregate_of_application_signatures_is_not_authentication(self, curve, keypairs):
        keys = [pk for _, pk in keypairs]
        fake = curve.aggregate_signatures(
            [kosk.kosk_sign(curve, sk, curve.marshal_public_key(pk)) for sk, pk in keypairs]
        )
        assert not kosk.check_aggregate_authentication(curve, keys, fake)

    def test_authenticated_multi_signature(self, curve, entries, multisig):
        aggsig, _ = multisig
        assert kosk.kosk_verify_authenticated_multi_signature(curve, aggsig, entries, MSG)
        assert not kosk.kosk_verify_authenticated_multi_signature(curve, aggsig, entries, _flip_bit(MSG))
        assert kosk.kosk_verify_authenticated_multi_signature(curve, aggsig, [], MSG) is False

    def test_swapped_authentication(self, curve, entries, multisig):
        aggsig, _ = multisig
        tampered = list(entries)
        tampered[1] = AuthenticatedKey(public_key=entries[1].public_key, authentication=entries[0].authentication)
        assert not kosk.kosk_verify_authenticated_multi_signature(curve, aggsig, tampered, MSG)


class TestIdentityKey:
    """The identity is the public key of secret 0 and never verifies."""

    def test_identity_authentication_rejected(self, curve):
        assert not kosk.check_authentication(curve, curve.key_identity, curve.signature_identity)
        assert not curve.verify_single_signature(curve.signature_identity, curve.key_identity, b"msg")

    def test_identity_does_not_sign_every_message(self, curve):
        for msg in (b"", b"any msg", MSG):
            assert not kosk.kosk_verify_single_signature(curve, curve.key_identity, msg, curve.signature_identity)

    def test_identity_in_multi_signature(self, curve, keypairs):
        sk, pk = keypairs[0]
        sig = kosk.kosk_sign(curve, sk, MSG)
        assert kosk.kosk_verify_multi_signature(curve, sig, [pk], MSG)
        # Adding the identity leaves the key sum unchanged; it must not pass as a second signer.
        assert not kosk.kosk_verify_multi_signature(curve, sig, [pk, curve.key_identity], MSG)
        assert not MultiSig(signature=sig, keys=[pk, curve.key_identity], message=MSG).verify(curve)

    def test_identity_in_aggregate_signature(self, curve, keypairs):
        sk, pk = keypairs[0]
        sig = kosk.kosk_sign(curve, sk, b"first")
        assert not kosk.kosk_verify_aggregate_signature(curve, sig, [pk, curve.key_identity], [b"first", b"second"])

    def test_identity_in_batch(self, curve, keypairs):
        (sk1, pk1), (sk2, pk2), _ = keypairs
        aggsigs = [kosk.kosk_sign(curve, sk1, b"a"), kosk.kosk_sign(curve, sk2, b"b")]
        assert kosk.kosk_verify_batch_multi_signature(curve, aggsigs, [[pk1], [pk2]], [b"a", b"b"])
        key_sets = [[pk1, curve.key_identity], [pk2]]
        assert not kosk.kosk_verify_batch_multi_signature(curve, aggsigs, key_sets, [b"a", b"b"])

    def test_identity_with_multiplicity(self, curve, keypairs):
        _, (sk2, pk2), _ = keypairs
        s2 = kosk.kosk_sign(curve, sk2, MSG)
        assert kosk.kosk_verify_multi_signature_with_multiplicity(curve, s2, [pk2], [1], MSG)
        for counts in ([5, 1], [0, 1]):
            assert not kosk.kosk_verify_multi_signature_with_multiplicity(
                curve, s2, [curve.key_identity, pk2], counts, MSG
            )

    def test_all_zero_multiplicity(self, curve, keypairs):
        keys = [pk for _, pk in keypairs]
        assert not kosk.kosk_verify_multi_signature_with_multiplicity(
            curve, curve.signature_identity, keys, [0] * len(keys), MSG
        )

    def test_identity_in_aggregate_authentication(self, curve, keypairs):
        sk, pk = keypairs[0]
        auth = kosk.authenticate(curve, sk)
        entries = [
            AuthenticatedKey(public_key=pk, authentication=auth),
            AuthenticatedKey(public_key=curve.key_identity, authentication=curve.signature_identity),
        ]
        assert not kosk.check_aggregate_authentication(curve, [pk, curve.key_identity], auth)
        assert not kosk.kosk_verify_authenticated_multi_signature(curve, kosk.kosk_sign(curve, sk, MSG), entries, MSG)


# Each check signs with `sign_hash` and verifies with `verify_hash`.

def _check_multi(curve, keypairs, sign_hash, verify_hash):
    aggsig = curve.aggregate_signatures([kosk.kosk_sign(curve, sk, MSG, hash_fn=sign_hash) for sk, _ in keypairs])
    return kosk.kosk_verify_multi_signature(curve, aggsig, [pk for _, pk in keypairs], MSG, hash_fn=verify_hash)


def _check_multisig_model(curve, keypairs, sign_hash, verify_hash):
    aggsig = curve.aggregate_signatures([kosk.kosk_sign(curve, sk, MSG, hash_fn=sign_hash) for sk, _ in keypairs])
    return MultiSig(signature=aggsig, keys=[pk for _, pk in keypairs], message=MSG).verify(curve, hash_fn=verify_hash)


def _check_aggregate(curve, keypairs, sign_hash, verify_hash):
    msgs = [b"first", b"second", b"third"]
    aggsig = curve.aggregate_signatures(
        [kosk.kosk_sign(curve, sk, m, hash_fn=sign_hash) for (sk, _), m in zip(keypairs, msgs)]
    )
    return kosk.kosk_verify_aggregate_signature(curve, aggsig, [pk for _, pk in keypairs], msgs, hash_fn=verify_hash)


def _check_batch(curve, keypairs, sign_hash, verify_hash):
    (sk1, pk1), (sk2, pk2), (sk3, pk3) = keypairs
    aggsigs = [
        curve.aggregate_signatures([kosk.kosk_sign(curve, sk, b"a", hash_fn=sign_hash) for sk in (sk1, sk2)]),
        kosk.kosk_sign(curve, sk3, b"b", hash_fn=sign_hash),
    ]
    return kosk.kosk_verify_batch_multi_signature(curve, aggsigs, [[pk1, pk2], [pk3]], [b"a", b"b"], hash_fn=verify_hash)


def _check_multiplicity(curve, keypairs, sign_hash, verify_hash):
    (sk1, pk1), (sk2, pk2), _ = keypairs
    s1 = kosk.kosk_sign(curve, sk1, MSG, hash_fn=sign_hash)
    s2 = kosk.kosk_sign(curve, sk2, MSG, hash_fn=sign_hash)
    aggsig = curve.aggregate_signatures([s1, s1, s2])
    return kosk.kosk_verify_multi_signature_with_multiplicity(
        curve, aggsig, [pk1, pk2], [2, 1], MSG, hash_fn=verify_hash
    )


def _check_aggregate_authentication(curve, keypairs, sign_hash, verify_hash):
    aggregated = kosk.aggregate_authentications(curve, [kosk.authenticate(curve, sk, hash_fn=sign_hash) for sk, _ in keypairs])
    return kosk.check_aggregate_authentication(curve, [pk for _, pk in keypairs], aggregated, hash_fn=verify_hash)


def _check_authenticated_multi(curve, keypairs, sign_hash, verify_hash):
    entries = [
        AuthenticatedKey(public_key=pk, authentication=kosk.authenticate(curve, sk, hash_fn=sign_hash))
        for sk, pk in keypairs
    ]
    aggsig = curve.aggregate_signatures([kosk.kosk_sign(curve, sk, MSG, hash_fn=sign_hash) for sk, _ in keypairs])
    return kosk.kosk_verify_authenticated_multi_signature(curve, aggsig, entries, MSG, hash_fn=verify_hash)


class TestCustomHash:

    @pytest.mark.parametrize(
        "check",
        [
            _check_multi,
            _check_multisig_model,
            _check_aggregate,
            _check_batch,
            _check_multiplicity,
            _check_aggregate_authentication,
            _check_authenticated_multi,
        ],
        ids=lambda fn: fn.__name__[len("_check_"):],
    )
    def test_custom_hash_reaches_verification(self, curve, keypairs, check):
        custom_hash = _custom_hash(curve)
        assert check(curve, keypairs, custom_hash, custom_hash)
        assert not check(curve, keypairs, custom_hash, None)
        assert not check(curve, keypairs, None, custom_hash)
