"""Tests for raw Transfer log decoding."""

from hexbytes import HexBytes

from fake_chain import FakeChain, addr, pad_address
from token_indexer.config.constants import TRANSFER_TOPIC, ZERO_ADDRESS
from token_indexer.services.blockchain.events import (
    TransferEvent,
    decode_transfer_log,
    decode_transfer_logs,
)


def test_decode_hex_string_log() -> None:
    """String topics and data, as JSON-RPC returns them."""
    chain = FakeChain()
    chain.transfer(7, addr(1), addr(2), 10**18)

    event = decode_transfer_log(chain.logs[0])

    assert event == TransferEvent(
        block_number=7,
        log_index=0,
        from_address=addr(1),
        to_address=addr(2),
        value=10**18,
    )


def test_decode_hexbytes_log() -> None:
    """HexBytes topics and data, as web3 formats them."""
    log = {
        "blockNumber": 12,
        "logIndex": 3,
        "topics": [
            HexBytes(TRANSFER_TOPIC),
            HexBytes(pad_address(ZERO_ADDRESS)),
            HexBytes(pad_address("0x46617e7bca14de818d9E5cFf2aa106b72CB33fe3")),
        ],
        "data": HexBytes((2**256 - 1).to_bytes(32, "big")),
    }

    event = decode_transfer_log(log)

    assert event.from_address == ZERO_ADDRESS
    assert event.to_address == "0x46617e7bca14de818d9e5cff2aa106b72cb33fe3"
    assert event.value == 2**256 - 1
    assert event.log_index == 3


def test_decode_hex_block_number() -> None:
    chain = FakeChain()
    chain.transfer(255, addr(1), addr(2), 1)
    log = dict(chain.logs[0], blockNumber="0xff", logIndex="0x0")

    assert decode_transfer_log(log).block_number == 255


def test_empty_data_is_zero_value() -> None:
    chain = FakeChain()
    chain.transfer(1, addr(1), addr(2), 0)
    log = dict(chain.logs[0], data="0x")

    assert decode_transfer_log(log).value == 0


def test_non_erc20_log_is_skipped() -> None:
    """ERC721-style or malformed logs lack indexed from/to topics."""
    chain = FakeChain()
    chain.transfer(1, addr(1), addr(2), 5)
    chain.transfer(2, addr(2), addr(3), 5)
    malformed = dict(chain.logs[0], topics=[TRANSFER_TOPIC])

    assert decode_transfer_log(malformed) is None
    events = decode_transfer_logs([malformed, chain.logs[1]])
    assert [e.block_number for e in events] == [2]
