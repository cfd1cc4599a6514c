from .builder import MAX_SLOTS, MAX_TOTAL_BITS, EncryptedInputBuilder

__all__ = ["EncryptedInputBuilder", "MAX_SLOTS", "MAX_TOTAL_BITS"]
