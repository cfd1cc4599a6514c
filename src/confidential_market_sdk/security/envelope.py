"""Sealing of plaintext input batches to the network public key."""

from __future__ import annotations

import secrets
from dataclasses import dataclass

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import x25519
from cryptography.hazmat.primitives.ciphers.aead import ChaCha20Poly1305
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

_KEY_SIZE = 32
_NONCE_SIZE = 12


@dataclass
class SealedInput:
    """Encrypted input batch."""

    ciphertext: bytes
    ephemeral_public_key: bytes
    nonce: bytes

    def to_bytes(self) -> bytes:
        return self.ephemeral_public_key + self.nonce + self.ciphertext

    @classmethod
    def from_bytes(cls, data: bytes) -> SealedInput:
        if len(data) < _KEY_SIZE + _NONCE_SIZE + 16:
            raise ValueError("sealed input too short")
        return cls(
            ephemeral_public_key=data[:_KEY_SIZE],
            nonce=data[_KEY_SIZE : _KEY_SIZE + _NONCE_SIZE],
            ciphertext=data[_KEY_SIZE + _NONCE_SIZE :],
        )


class InputEncryption:
    """Ephemeral-static X25519 + HKDF-SHA256 + ChaCha20-Poly1305.

    The associated data binds the ciphertext to its (contract, user, chain)
    pair; the recipient has to supply the same bytes to open it.
    """

    def __init__(self):
        self.cipher = ChaCha20Poly1305

    def generate_key_pair(self) -> tuple[x25519.X25519PrivateKey, x25519.X25519PublicKey]:
        private_key = x25519.X25519PrivateKey.generate()
        return private_key, private_key.public_key()

    def derive_shared_secret(
        self, private_key: x25519.X25519PrivateKey, peer_public_key: x25519.X25519PublicKey
    ) -> bytes:
        shared_key = private_key.exchange(peer_public_key)
        hkdf = HKDF(
            algorithm=hashes.SHA256(),
            length=_KEY_SIZE,
            salt=b"confidential-market-input-v1",
            info=b"input-encryption",
        )
        return hkdf.derive(shared_key)

    def seal(self, plaintext: bytes, recipient_public_key: bytes, associated_data: bytes) -> SealedInput:
        recipient = x25519.X25519PublicKey.from_public_bytes(recipient_public_key)
        ephemeral_private, ephemeral_public = self.generate_key_pair()
        cipher = self.cipher(self.derive_shared_secret(ephemeral_private, recipient))

        nonce = secrets.token_bytes(_NONCE_SIZE)
        ephemeral_public_bytes = ephemeral_public.public_bytes(
            encoding=serialization.Encoding.Raw, format=serialization.PublicFormat.Raw
        )
        ciphertext = cipher.encrypt(nonce, plaintext, ephemeral_public_bytes + associated_data)
        return SealedInput(
            ciphertext=ciphertext,
            ephemeral_public_key=ephemeral_public_bytes,
            nonce=nonce,
        )

    def open(
        self,
        sealed: SealedInput,
        private_key: x25519.X25519PrivateKey,
        associated_data: bytes,
    ) -> bytes:
        """Recipient side of ``seal``. Raises ``ValueError`` on tampering."""
        ephemeral_public = x25519.X25519PublicKey.from_public_bytes(sealed.ephemeral_public_key)
        cipher = self.cipher(self.derive_shared_secret(private_key, ephemeral_public))
        try:
            return cipher.decrypt(
                sealed.nonce, sealed.ciphertext, sealed.ephemeral_public_key + associated_data
            )
        except InvalidTag as e:
            raise ValueError("sealed input failed authentication") from e
