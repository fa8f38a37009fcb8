from mangarr.errors import DecodeError


def convert_hex_to_bytes(hex_str: str) -> bytes:
    """
    Convert a hexadecimal key string to bytes.
    """
    try:
        key = bytes.fromhex(hex_str)
    except ValueError as exc:
        raise DecodeError(f"invalid decryption key: {exc}") from exc
    if not key:
        raise DecodeError("decryption key is empty")
    return key


def xor_decrypt(data: bytearray, key: bytes) -> bytearray:
    """
    Decrypt data in place using XOR with a repeating key.

    XOR is symmetric, so the same call also encrypts.
    """
    key_length = len(key)
    for index in range(len(data)):
        data[index] ^= key[index % key_length]
    return data


def decrypt_image(data: bytes, encryption_hex: str) -> bytes:
    """
    Decrypt a downloaded image payload with its hex-encoded key.
    """
    encryption_key = convert_hex_to_bytes(encryption_hex)
    return bytes(xor_decrypt(bytearray(data), encryption_key))
