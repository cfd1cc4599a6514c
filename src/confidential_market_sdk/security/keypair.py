from __future__ import annotations

from dataclasses import dataclass, field

from nacl.exceptions import CryptoError
from nacl.public import PrivateKey, SealedBox


@dataclass(frozen=True)
class DecryptionKeypair:
    """Single-use keypair authenticating one decryption request.

    Only ``public_key`` ever leaves the process. Never persisted or reused.
    """

    private_key: PrivateKey = field(repr=False)

    @classmethod
    def generate(cls) -> DecryptionKeypair:
        return cls(private_key=PrivateKey.generate())

    @property
    def public_key(self) -> bytes:
        return bytes(self.private_key.public_key)

    @property
    def public_key_hex(self) -> str:
        return "0x" + self.public_key.hex()

    def unseal(self, payload: bytes) -> bytes:
        """Open a payload the relayer sealed to ``public_key``."""
        try:
            return SealedBox(self.private_key).decrypt(payload)
        except CryptoError as e:
            raise ValueError("payload could not be opened with this keypair") from e
