"""
Masking helpers for log output.
"""


def mask_address(address: str | None) -> str:
    """
    Mask wallet or contract address for logging: 0x1234...5678

    Args:
        address: Address to mask

    Returns:
        Masked address showing first 6 and last 4 characters

    Examples:
        >>> mask_address("0x1234567890abcdef1234567890abcdef12345678")
        '0x1234...5678'
        >>> mask_address(None)
        '***'
        >>> mask_address("short")
        '***'
    """
    if not address or len(address) < 10:
        return "***"
    return f"{address[:6]}...{address[-4:]}"
