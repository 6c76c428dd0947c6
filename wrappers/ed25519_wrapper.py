# wrappers/ed25519_wrapper.py
# Ed25519 keypair wrapper on top of the `cryptography` package.
#
# Key conventions:
#   - Secret keys (SK, the 32-byte seed) and public keys (PK) are 32 bytes.
#   - Signatures are 64 bytes: R(32B encoded point) || S(32B scalar).
#
# Request authorization signs the canonical JSON of a payload with this key;
# the PK doubles as the signer's identity (authority, relayer, token owner).

import binascii
import os
from typing import Optional, Tuple, Union

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)

BytesLike = Union[bytes, bytearray, memoryview]


def _raw_pk(pub: Ed25519PublicKey) -> bytes:
    return pub.public_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PublicFormat.Raw,
    )


class Ed25519Keypair:
    def __init__(self, sk: Optional[BytesLike] = None):
        """
        Construct the keypair wrapper. No implicit SK generation is performed.
        If sk is provided, it is set directly after validation.
        """
        self.sk: Optional[bytes] = None
        self.pk: Optional[bytes] = None
        self._priv: Optional[Ed25519PrivateKey] = None
        self._pub: Optional[Ed25519PublicKey] = None

        if sk is not None:
            self.set_sk(sk)

    # ---------------- SK / PK Management ----------------

    def set_sk(self, sk_bytes: BytesLike) -> None:
        """Set an existing 32-byte secret key."""
        if not isinstance(sk_bytes, (bytes, bytearray, memoryview)):
            raise TypeError("sk must be bytes-like")
        sk = bytes(sk_bytes)
        if len(sk) != 32:
            raise ValueError("sk must be exactly 32 bytes")
        self.sk = sk
        self._priv = Ed25519PrivateKey.from_private_bytes(sk)
        self._pub = None
        self.pk = None

    def set_pk(self, pk_bytes: BytesLike) -> None:
        """Set an existing 32-byte public key (verification only)."""
        if not isinstance(pk_bytes, (bytes, bytearray, memoryview)):
            raise TypeError("pk must be bytes-like")
        pk = bytes(pk_bytes)
        if len(pk) != 32:
            raise ValueError("pk must be exactly 32 bytes")
        self._pub = Ed25519PublicKey.from_public_bytes(pk)
        self.pk = pk

    def get_sk(self) -> bytes:
        """Generate a random 32-byte secret key, set it and return it."""
        self.set_sk(os.urandom(32))
        return self.sk

    def get_pk_from_sk(self) -> bytes:
        """Derive the 32-byte public key from the current SK."""
        if self._priv is None:
            raise RuntimeError("SK not set. Call get_sk() or set_sk(sk_bytes).")
        self._pub = self._priv.public_key()
        self.pk = _raw_pk(self._pub)
        return self.pk

    # ---------------- Sign / Verify ----------------

    def sign(self, msg: BytesLike) -> Tuple[bytes, bytes, bytes]:
        """
        Sign a message using the current SK.
        Returns a tuple:
            (r_bytes, s_bytes, raw_signature)
        where raw_signature = r_bytes || s_bytes (64 bytes).
        """
        if self._priv is None:
            raise RuntimeError("SK not set. Cannot sign without SK.")
        if not isinstance(msg, (bytes, bytearray, memoryview)):
            raise TypeError("message must be bytes-like")

        raw_sig = self._priv.sign(bytes(msg))
        return raw_sig[:32], raw_sig[32:], raw_sig

    def verify_signature(
        self,
        signature: Union[BytesLike, Tuple[BytesLike, BytesLike]],
        msg: BytesLike,
    ) -> bool:
        """
        Verify a signature against the current PK.
        Signature may be raw 64 bytes (r||s) or a tuple (r_bytes, s_bytes).
        """
        if not isinstance(msg, (bytes, bytearray, memoryview)):
            raise TypeError("message must be bytes-like")

        if isinstance(signature, (bytes, bytearray, memoryview)):
            raw_sig = bytes(signature)
        elif isinstance(signature, (list, tuple)) and len(signature) == 2:
            r_part, s_part = signature
            raw_sig = bytes(r_part) + bytes(s_part)
        else:
            raise TypeError("signature must be raw 64 bytes or a (r_bytes, s_bytes) tuple")

        if len(raw_sig) != 64:
            return False

        if self._pub is None:
            if self._priv is None:
                raise RuntimeError("neither PK nor SK set")
            self.get_pk_from_sk()

        try:
            self._pub.verify(raw_sig, bytes(msg))
        except InvalidSignature:
            return False
        return True

    def __repr__(self):
        skh = binascii.hexlify(self.sk[:4]).decode() + "..." if self.sk else "None"
        pkh = binascii.hexlify(self.pk[:4]).decode() + "..." if self.pk else "None"
        return f"<ed25519_keys sk={skh} pk={pkh}>"
