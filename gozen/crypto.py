"""Hash digests, random tokens and AES/CBC with PKCS#5 padding."""

from __future__ import annotations

import base64
import hashlib
import secrets

from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

_AES_BLOCK_SIZE = 16
_AES_KEY_SIZES = (16, 24, 32)


def _to_bytes(value: str | bytes) -> bytes:
    return value.encode("utf-8") if isinstance(value, str) else bytes(value)


def md5_trimmed_lower(text: str) -> str:
    """MD5 hex digest of ``text`` after trimming whitespace and lower-casing it."""
    return hashlib.md5(text.strip().lower().encode("utf-8")).hexdigest()


def md5_trimmed(text: str) -> str:
    """MD5 hex digest of ``text`` after trimming surrounding whitespace."""
    return hashlib.md5(text.strip().encode("utf-8")).hexdigest()


def sha1_hex(text: str) -> str:
    """SHA-1 hex digest of ``text``."""
    return hashlib.sha1(text.encode("utf-8")).hexdigest()


def md5_hex(text: str) -> str:
    """MD5 hex digest of ``text``."""
    return hashlib.md5(text.encode("utf-8")).hexdigest()


def md5_hex_lower(text: str) -> str:
    """MD5 hex digest of ``text`` in lower case."""
    return md5_hex(text).lower()


def random_token(n: int) -> str:
    """Hex string of ``n`` cryptographically random bytes (``2 * n`` characters)."""
    return secrets.token_hex(n)


def random_token16() -> str:
    """Random hex token of 16 characters."""
    return random_token(8)


def random_token32() -> str:
    """Random hex token of 32 characters."""
    return random_token(16)


def pkcs5_pad(data: bytes, block_size: int) -> bytes:
    """Pad ``data`` up to a multiple of ``block_size`` (always adds at least one byte)."""
    padding = block_size - len(data) % block_size
    return bytes(data) + bytes([padding]) * padding


def pkcs5_trim(data: bytes) -> bytes:
    """Strip the padding whose length is given by the last byte of ``data``."""
    if not data:
        raise ValueError("cannot trim padding from empty data")
    padding = data[-1]
    if padding > len(data):
        raise ValueError(f"padding length {padding} exceeds data length {len(data)}")
    return bytes(data[: len(data) - padding])


def _cipher(key: str | bytes, iv: str | bytes) -> Cipher:
    key_bytes = _to_bytes(key)
    iv_bytes = _to_bytes(iv)
    if len(key_bytes) not in _AES_KEY_SIZES:
        raise ValueError(f"invalid AES key size {len(key_bytes)}")
    if len(iv_bytes) != _AES_BLOCK_SIZE:
        raise ValueError("IV length must equal block size")
    return Cipher(algorithms.AES(key_bytes), modes.CBC(iv_bytes))


def aes_cbc_encrypt(key: str | bytes, iv: str | bytes, data: bytes) -> bytes:
    """Encrypt ``data`` with AES in CBC mode after PKCS#5 padding."""
    encryptor = _cipher(key, iv).encryptor()
    content = pkcs5_pad(data, _AES_BLOCK_SIZE)
    return encryptor.update(content) + encryptor.finalize()


def aes_cbc_decrypt(key: str | bytes, iv: str | bytes, data: bytes) -> bytes:
    """Decrypt AES/CBC ``data`` and strip its PKCS#5 padding."""
    decryptor = _cipher(key, iv).decryptor()
    if len(data) % _AES_BLOCK_SIZE:
        raise ValueError("input not full blocks")
    decrypted = decryptor.update(bytes(data)) + decryptor.finalize()
    return pkcs5_trim(decrypted)


def aes_cbc_decrypt_base64(key: str | bytes, iv: str | bytes, text: str) -> bytes:
    """Decode standard base64 ``text`` and decrypt it as AES/CBC."""
    raw = base64.b64decode(text, validate=True)
    return aes_cbc_decrypt(key, iv, raw)