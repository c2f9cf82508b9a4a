"""Table-driven CRC-32 (reflected polynomial 0xEDB88320)."""

POLYNOMIAL = 0xEDB88320


def _build_table():
    table = []
    for value in range(256):
        for _ in range(8):
            if value & 1:
                value = POLYNOMIAL ^ (value >> 1)
            else:
                value >>= 1
        table.append(value)
    return tuple(table)


CRC_TABLE = _build_table()


def crc32(data):
    """
    Compute the CRC-32 of a byte span.

    Args:
        data: bytes, bytearray or memoryview

    Returns:
        crc: Unsigned 32-bit checksum
    """
    crc = 0xFFFFFFFF
    for byte in bytes(data):
        crc = CRC_TABLE[(crc ^ byte) & 0xFF] ^ (crc >> 8)
    return crc ^ 0xFFFFFFFF
