from __future__ import annotations

import pytest

from pqcguard import (
    AlgorithmNotEnabled,
    AlgorithmNotSupported,
    DecapsulationFailed,
    EncapsulationFailed,
    InvalidCiphertextLength,
    InvalidPublicKeyLength,
    KeyEncapsulationSession,
    KeyPairGenerationFailed,
    MissingOrInvalidSecretKey,
    SessionNotInitialized,
    SessionState,
    get_registry,
)


@pytest.mark.parametrize("name", ["FakeKEM-512", "FakeKEM-1024"])
def test_round_trip_for_every_enabled_kem(fake_engine, name) -> None:
    assert name in get_registry().enabled_kems()
    with KeyEncapsulationSession(name) as server, KeyEncapsulationSession(name) as client:
        public_key = server.generate_keypair()
        details = server.details
        assert len(public_key) == details.length_public_key
        assert len(server.export_secret_key()) == details.length_secret_key
        assert server.state is SessionState.KEY_PAIR_GENERATED

        ciphertext, shared_secret = client.encap_secret(public_key)
        assert len(ciphertext) == details.length_ciphertext
        assert len(shared_secret) == details.length_shared_secret
        assert server.decap_secret(ciphertext) == shared_secret


def test_init_rejects_unknown_and_disabled(fake_engine) -> None:
    with pytest.raises(AlgorithmNotSupported, match="not supported"):
        KeyEncapsulationSession("ML-KEM-768")
    with pytest.raises(AlgorithmNotEnabled, match="not enabled"):
        KeyEncapsulationSession("FakeKEM-Disabled")
    # A signature name is not a KEM.
    with pytest.raises(AlgorithmNotSupported):
        KeyEncapsulationSession("FakeSig-Ctx")
    assert fake_engine.live == []


def test_init_with_secret_key_allows_decapsulation(fake_engine) -> None:
    with KeyEncapsulationSession("FakeKEM-512") as first:
        public_key = first.generate_keypair()
        secret_key = first.export_secret_key()
    with KeyEncapsulationSession("FakeKEM-512", secret_key) as restored, \
            KeyEncapsulationSession("FakeKEM-512") as client:
        assert restored.state is SessionState.KEY_IMPORTED
        ciphertext, shared_secret = client.encap_secret(public_key)
        assert restored.decap_secret(ciphertext) == shared_secret


def test_encap_rejects_wrong_public_key_length(fake_engine) -> None:
    with KeyEncapsulationSession("FakeKEM-512") as kem:
        public_key = kem.generate_keypair()
        with pytest.raises(InvalidPublicKeyLength):
            kem.encap_secret(public_key[:-1])
        with pytest.raises(InvalidPublicKeyLength):
            kem.encap_secret(public_key + b"\x00")
    assert "kem_encaps" not in fake_engine.native_calls


def test_decap_validates_ciphertext_then_secret_key(fake_engine) -> None:
    with KeyEncapsulationSession("FakeKEM-512") as kem:
        length = kem.details.length_ciphertext
        with pytest.raises(InvalidCiphertextLength):
            kem.decap_secret(bytes(length - 1))
        with pytest.raises(MissingOrInvalidSecretKey):
            kem.decap_secret(bytes(length))
    with KeyEncapsulationSession("FakeKEM-512", b"too short") as kem:
        with pytest.raises(MissingOrInvalidSecretKey):
            kem.decap_secret(bytes(kem.details.length_ciphertext))
    assert "kem_decaps" not in fake_engine.native_calls


def test_keypair_failure_keeps_nothing(fake_engine) -> None:
    fake_engine.fail.add("kem_keypair")
    with KeyEncapsulationSession("FakeKEM-512") as kem:
        with pytest.raises(KeyPairGenerationFailed):
            kem.generate_keypair()
        assert kem.export_secret_key() is None
        assert kem.state is SessionState.INITIALIZED
        scratch = fake_engine.last_secret_buffer
        assert scratch is not None and not any(scratch)


def test_keypair_failure_preserves_previous_key(fake_engine) -> None:
    with KeyEncapsulationSession("FakeKEM-512") as kem:
        kem.generate_keypair()
        before = kem.export_secret_key()
        fake_engine.fail.add("kem_keypair")
        with pytest.raises(KeyPairGenerationFailed):
            kem.generate_keypair()
        assert kem.export_secret_key() == before


def test_encap_and_decap_failures(fake_engine) -> None:
    with KeyEncapsulationSession("FakeKEM-512") as kem:
        public_key = kem.generate_keypair()
        ciphertext, _ = kem.encap_secret(public_key)

        fake_engine.fail.add("kem_encaps")
        with pytest.raises(EncapsulationFailed):
            kem.encap_secret(public_key)
        assert not any(fake_engine.last_secret_buffer)

        fake_engine.fail.add("kem_decaps")
        with pytest.raises(DecapsulationFailed):
            kem.decap_secret(ciphertext)
        assert not any(fake_engine.last_secret_buffer)


def test_clean_zeroizes_secret_and_releases_handle(fake_engine) -> None:
    kem = KeyEncapsulationSession("FakeKEM-1024")
    kem.generate_keypair()
    custodied = kem._secret_key
    assert custodied is not None and any(custodied.raw)

    kem.clean()
    assert custodied.is_zeroized
    assert bytes(custodied.raw) == bytes(len(custodied.raw))
    assert fake_engine.cleanse_calls >= 1
    assert fake_engine.live == []
    assert len(fake_engine.freed) == 1
    assert kem.state is SessionState.CLEANED

    kem.clean()
    assert len(fake_engine.freed) == 1


def test_exported_key_cannot_touch_custody(fake_engine) -> None:
    with KeyEncapsulationSession("FakeKEM-512") as kem:
        kem.generate_keypair()
        exported = bytearray(kem.export_secret_key())
        exported[:] = bytes(len(exported))
        assert kem.export_secret_key() != bytes(exported)


def test_operations_require_initialized_session(fake_engine) -> None:
    kem = KeyEncapsulationSession()
    assert kem.state is SessionState.UNINITIALIZED
    with pytest.raises(SessionNotInitialized):
        kem.generate_keypair()
    with pytest.raises(SessionNotInitialized):
        kem.encap_secret(b"")
    kem.clean()
    assert kem.state is SessionState.UNINITIALIZED

    kem.init("FakeKEM-512")
    kem.clean()
    with pytest.raises(SessionNotInitialized):
        kem.decap_secret(b"")
    with pytest.raises(SessionNotInitialized):
        kem.export_secret_key()


def test_reinit_after_clean_and_on_live_session(fake_engine) -> None:
    kem = KeyEncapsulationSession("FakeKEM-512")
    kem.generate_keypair()
    old_key = kem._secret_key
    kem.init("FakeKEM-1024")
    assert old_key.is_zeroized
    assert kem.details.name == "FakeKEM-1024"
    assert kem.state is SessionState.INITIALIZED
    assert len(fake_engine.live) == 1
    kem.clean()
    kem.init("FakeKEM-512")
    assert kem.generate_keypair()
    kem.clean()
    assert fake_engine.live == []


def test_context_manager_cleans_on_error(fake_engine) -> None:
    with pytest.raises(RuntimeError):
        with KeyEncapsulationSession("FakeKEM-512") as kem:
            kem.generate_keypair()
            custodied = kem._secret_key
            raise RuntimeError("boom")
    assert custodied.is_zeroized
    assert fake_engine.live == []


def test_dropping_live_session_warns_and_cleans(fake_engine) -> None:
    kem = KeyEncapsulationSession("FakeKEM-512")
    with pytest.warns(ResourceWarning):
        kem.__del__()
    assert fake_engine.live == []


def test_str_and_details(fake_engine) -> None:
    with KeyEncapsulationSession("FakeKEM-512") as kem:
        assert str(kem) == "Key encapsulation mechanism: FakeKEM-512"
        text = str(kem.details)
        assert "Claimed NIST level: 1" in text
        assert "Length ciphertext (bytes): 24" in text


def test_explicit_engine_is_used_instead_of_global(fake_engine) -> None:
    from conftest import FakeEngine

    other = FakeEngine()
    with KeyEncapsulationSession("FakeKEM-512", engine=other) as kem:
        kem.generate_keypair()
        assert len(other.live) == 1
        assert fake_engine.live == []
