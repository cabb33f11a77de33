"""Tests for rendering inbound messages into relay payloads."""

import pytest

from conftest import make_message, text_channel
from core.models import Attachment, ChannelKind, EchoLink
from core.transformer import (
    DEFAULT_COLOR,
    MAX_BODY_LENGTH,
    PLACEHOLDER_BODY,
    TRUNCATION_MARKER,
    MessageTransformer,
    build_body,
)

TARGET = text_channel("c2", "news-feed")


def _link(**kwargs) -> EchoLink:
    return EchoLink(guild_id="g1", source_channel_id="c1", target_channel_id="c2", **kwargs)


@pytest.fixture
def transformer() -> MessageTransformer:
    return MessageTransformer()


def test_labelled_link_payload(transformer):
    message = make_message("  hello  ")

    payload = transformer.transform(message, _link(feed_label="news", color=0xFF9900), TARGET)

    assert payload.body == "hello"
    assert payload.color == 0xFF9900
    assert payload.author_name == "Alice • news"
    assert payload.timestamp == message.created_at
    assert payload.footer == "From #general • ID u42"


def test_unlabelled_link_uses_default_color(transformer):
    payload = transformer.transform(make_message(), _link(feed_label="   "), TARGET)

    assert payload.author_name == "Alice"
    assert payload.color == DEFAULT_COLOR


def test_black_is_a_real_color(transformer):
    payload = transformer.transform(make_message(), _link(color=0x000000), TARGET)

    assert payload.color == 0


def test_custom_default_color():
    payload = MessageTransformer(default_color=0x123456).transform(make_message(), _link(), TARGET)

    assert payload.color == 0x123456


def test_empty_message_gets_placeholder():
    assert build_body(make_message("   ")) == PLACEHOLDER_BODY


def test_body_sections_in_order():
    message = make_message(
        "look",
        attachments=(Attachment("cat.png", "https://cdn/cat.png"), Attachment(None, "https://cdn/x")),
        stickers=("wave", "", "dance"),
    )

    assert build_body(message) == (
        "look\n\n"
        "📎 [cat.png](https://cdn/cat.png)\n📎 [attachment](https://cdn/x)\n\n"
        "🎟️ Stickers: wave, dance"
    )


def test_attachments_only_has_no_placeholder():
    body = build_body(make_message("", attachments=(Attachment("a.txt", "https://cdn/a.txt"),)))

    assert body == "📎 [a.txt](https://cdn/a.txt)"


def test_long_body_is_truncated():
    body = build_body(make_message("x" * 5000))

    assert len(body) == MAX_BODY_LENGTH + len(TRUNCATION_MARKER)
    assert body.endswith(TRUNCATION_MARKER)


def test_body_at_limit_is_untouched():
    body = build_body(make_message("x" * MAX_BODY_LENGTH))

    assert body == "x" * MAX_BODY_LENGTH


def test_unknown_channel_name_in_footer(transformer):
    payload = transformer.transform(make_message(channel_name=None), _link(), TARGET)

    assert payload.footer == "From #unknown • ID u42"


def test_avatar_is_carried(transformer):
    payload = transformer.transform(make_message(author_avatar_url="https://cdn/a.png"), _link(), TARGET)

    assert payload.author_icon_url == "https://cdn/a.png"


def test_announcement_target_is_supported(transformer):
    target = text_channel("c3", kind=ChannelKind.ANNOUNCEMENT)

    assert transformer.transform(make_message(), _link(), target) is not None


def test_missing_or_unsupported_target_is_skipped(transformer):
    assert transformer.transform(make_message(), _link(), None) is None
    assert transformer.transform(make_message(), _link(), text_channel("v", kind=ChannelKind.OTHER)) is None
