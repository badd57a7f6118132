from __future__ import annotations

import pytest

from devtoolbox.telemetry.ringbuffer import RingBuffer


@pytest.mark.parametrize("capacity,pushed", [(1, 5), (3, 2), (3, 3), (4, 11)])
def test_ring_buffer_keeps_newest_items_in_order(capacity: int, pushed: int) -> None:
    buf: RingBuffer[int] = RingBuffer(capacity)
    for i in range(pushed):
        buf.append(i)
        assert len(buf) <= capacity

    expected = list(range(pushed))[-capacity:]
    assert list(buf) == expected
    assert buf[0] == expected[0]
    assert buf[-1] == pushed - 1


def test_resize_smaller_drops_oldest() -> None:
    buf: RingBuffer[int] = RingBuffer(5)
    for i in range(7):
        buf.append(i)

    buf.resize(2)

    assert buf.capacity == 2
    assert list(buf) == [5, 6]
    buf.append(7)
    assert list(buf) == [6, 7]


def test_resize_larger_keeps_contents_without_backfill() -> None:
    buf: RingBuffer[str] = RingBuffer(2)
    for item in "abc":
        buf.append(item)

    buf.resize(4)

    assert list(buf) == ["b", "c"]
    buf.append("d")
    buf.append("e")
    assert list(buf) == ["b", "c", "d", "e"]


def test_invalid_capacity_rejected() -> None:
    with pytest.raises(ValueError):
        RingBuffer(0)
    buf: RingBuffer[int] = RingBuffer(1)
    with pytest.raises(ValueError):
        buf.resize(0)


def test_index_errors_on_empty_buffer() -> None:
    buf: RingBuffer[int] = RingBuffer(2)
    with pytest.raises(IndexError):
        buf[0]
    buf.append(1)
    buf.clear()
    assert list(buf) == []
