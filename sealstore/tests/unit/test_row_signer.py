from __future__ import annotations

from sealstore.services.crypto import signer
from sealstore.services.crypto.keys.base import KeyHandle


KEY = KeyHandle(key_id="sig-test", material=b"\x02" * 32)
OTHER_KEY = KeyHandle(key_id="sig-other", material=b"\x03" * 32)


def test_sign_is_deterministic_hex() -> None:
    first = signer.sign('1:"svc-a"', KEY)
    assert first == signer.sign('1:"svc-a"', KEY)
    assert len(first) == 64
    int(first, 16)


def test_verify_accepts_matching_signature() -> None:
    signature = signer.sign('1:"svc-a"', KEY)
    assert signer.verify('1:"svc-a"', signature, KEY) is True
    assert signer.verify('1:"svc-a"', signature.encode("ascii"), KEY) is True


def test_verify_rejects_changed_payload_or_key() -> None:
    signature = signer.sign('1:"svc-a"', KEY)
    assert signer.verify('1:"svc-b"', signature, KEY) is False
    assert signer.verify('1:"svc-a"', signature, OTHER_KEY) is False


def test_verify_never_raises_on_garbage() -> None:
    for bad in (None, "", "zz", "not-hex", b"\xff\xfe", "00" * 31):
        assert signer.verify('1:"svc-a"', bad, KEY) is False


def test_key_handle_repr_hides_material() -> None:
    assert "\\x02" not in repr(KEY)
    assert "sig-test" in repr(KEY)


def test_verify_rejects_reformatted_signature() -> None:
    signature = signer.sign('1:"svc-a"', KEY)
    spaced = " ".join(signature[i : i + 2] for i in range(0, len(signature), 2))
    for variant in (signature.upper(), spaced, f" {signature}", f"{signature}\n"):
        assert signer.verify('1:"svc-a"', variant, KEY) is False
