"""Client-side cryptography: input sealing and ephemeral decryption keys."""

from .envelope import InputEncryption, SealedInput
from .keypair import DecryptionKeypair

__all__ = [
    "DecryptionKeypair",
    "InputEncryption",
    "SealedInput",
]
