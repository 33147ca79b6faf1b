"""
Transfer event decoding.

Turns raw eth_getLogs records into TransferEvent values. Amounts stay
Python ints: 18-decimal token amounts do not fit a float.
"""

from dataclasses import dataclass
from typing import Any

from hexbytes import HexBytes
from loguru import logger


@dataclass(frozen=True)
class TransferEvent:
    """One ERC20 Transfer log."""

    block_number: int
    log_index: int
    from_address: str
    to_address: str
    value: int


def _topic_to_address(topic: Any) -> str:
    """Last 20 bytes of a 32-byte indexed topic as a lowercase 0x address."""
    return "0x" + bytes(HexBytes(topic))[-20:].hex()


def _as_int(value: Any) -> int:
    if isinstance(value, int):
        return value
    return int(value, 16) if isinstance(value, str) else int.from_bytes(value, "big")


def decode_transfer_log(log: Any) -> TransferEvent | None:
    """
    Decode a raw Transfer log.

    Args:
        log: Log record (web3 AttributeDict or plain dict)

    Returns:
        TransferEvent, or None if the log is not a standard ERC20 Transfer
        (fewer than three topics, e.g. an ERC721-style event)
    """
    topics = log["topics"]
    if len(topics) < 3:
        logger.warning(
            f"[Decoder] Skipping non-ERC20 Transfer log at block "
            f"{log.get('blockNumber')}: {len(topics)} topics"
        )
        return None

    data = bytes(HexBytes(log.get("data") or b""))
    return TransferEvent(
        block_number=_as_int(log["blockNumber"]),
        log_index=_as_int(log.get("logIndex", 0)),
        from_address=_topic_to_address(topics[1]),
        to_address=_topic_to_address(topics[2]),
        value=int.from_bytes(data, "big") if data else 0,
    )


def decode_transfer_logs(logs: list[Any]) -> list[TransferEvent]:
    """Decode logs in node order, dropping non-standard ones."""
    events = []
    for log in logs:
        event = decode_transfer_log(log)
        if event is not None:
            events.append(event)
    return events
