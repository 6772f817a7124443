import pytest

from callscribe.delivery import send_chunked, split_message
from callscribe.errors import DeliveryFailed

from fakes import FakeChannel


def test_short_text_is_one_unlabeled_message():
    assert split_message("hello", limit=50) == ["hello"]
    assert split_message("   ", limit=50) == []


def test_split_prefers_paragraph_boundaries():
    text = "first paragraph here\n\nsecond paragraph here\n\nthird one"
    parts = split_message(text, limit=40)

    assert len(parts) == 3
    assert parts[0] == "Part 1/3\nfirst paragraph here"
    assert parts[2] == "Part 3/3\nthird one"


def test_long_paragraph_splits_on_words():
    text = " ".join(f"w{i}" for i in range(100))
    parts = split_message(text, limit=60)

    assert all(len(p) <= 60 for p in parts)
    words = " ".join(p.split("\n", 1)[1] for p in parts).split(" ")
    assert words == text.split(" ")


def test_single_huge_word_is_hard_cut():
    parts = split_message("x" * 130, limit=50)
    assert all(len(p) <= 50 for p in parts)
    assert "".join(p.split("\n", 1)[1] for p in parts) == "x" * 130


def test_many_parts_keep_labels_within_limit():
    text = "\n\n".join("para %d %s" % (i, "y" * 20) for i in range(40))
    parts = split_message(text, limit=40)
    assert len(parts) >= 10
    assert all(len(p) <= 40 for p in parts)
    assert parts[-1].startswith(f"Part {len(parts)}/{len(parts)}\n")


@pytest.mark.asyncio
async def test_send_chunked_wraps_channel_errors():
    with pytest.raises(DeliveryFailed):
        await send_chunked(FakeChannel(fail=True), "hello")

    channel = FakeChannel()
    assert await send_chunked(channel, "hello") == 1
    assert channel.messages == ["hello"]
