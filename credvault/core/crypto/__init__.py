"""
credvault Cryptographic Core
============================

Authenticated encryption for individual credential secrets.

Architecture:
    1. AES-256-GCM: seals each password with a fresh 96-bit nonce
    2. Key file: supplies the 256-bit key passed explicitly to every call

Security Properties:
    - All encryption is authenticated (AEAD)
    - Secure RNG for every nonce and key
    - Tag failures surface as AuthenticationError, never as garbage text

WARNING: This module handles sensitive cryptographic material.
         Incorrect usage can compromise security.
"""

from credvault.core.crypto.aes_gcm import (
    AesGcmCipher,
    SealedSecret,
    decode_b64,
    decrypt,
    encode_b64,
    encrypt,
)
from credvault.core.crypto.keyfile import create_key_file, load_key, load_or_create_key

__all__ = [
    "AesGcmCipher",
    "SealedSecret",
    "encrypt",
    "decrypt",
    "encode_b64",
    "decode_b64",
    "create_key_file",
    "load_key",
    "load_or_create_key",
]
