"""
Invariants of the immutable value types.
"""

import dataclasses

import pytest

from docsheet.core.types import (
    AccessToken,
    Attachment,
    ChatTurn,
    ExtractionResult,
    GenerationReply,
    Usage,
)
from docsheet.exceptions import DocsheetError, InvalidRequestError, excerpt

pytestmark = pytest.mark.unit


def test_access_token_is_hidden_from_repr():
    token = AccessToken(token="ya29.secret", expires_in=3599)

    assert "ya29.secret" not in repr(token)
    assert token.authorization == "Bearer ya29.secret"


def test_attachment_requires_bytes_and_mime_type():
    with pytest.raises(TypeError, match="data"):
        Attachment(data="not bytes", mime_type="application/pdf")
    with pytest.raises(InvalidRequestError, match="mime_type"):
        Attachment(data=b"x", mime_type="")


def test_attachment_bytes_are_not_in_repr():
    attachment = Attachment(data=b"%PDF-secret", mime_type="application/pdf")

    assert "secret" not in repr(attachment)
    assert attachment.size == 11


def test_chat_turn_from_mapping_normalizes_role():
    turn = ChatTurn.from_mapping({"role": "Assistant", "content": "Hello"})

    assert turn.role == "model"
    assert turn.content == "Hello"


def test_chat_turn_from_mapping_defaults():
    turn = ChatTurn.from_mapping({"content": None})

    assert turn.role == "user"
    assert turn.content == ""


def test_chat_turn_from_mapping_carries_attachments():
    attachment = Attachment(data=b"\x89PNG", mime_type="image/png")

    turn = ChatTurn.from_mapping(
        {"role": "user", "content": "See image", "attachments": [attachment]}
    )

    assert turn.attachments == (attachment,)


def test_value_types_are_frozen():
    usage = Usage(input_tokens=1, output_tokens=2, total_tokens=3)

    with pytest.raises(dataclasses.FrozenInstanceError):
        usage.total_tokens = 4  # type: ignore[misc]


def test_reply_truncation_flag():
    assert GenerationReply(text="x", finish_reason="MAX_TOKENS").truncated
    assert not GenerationReply(text="x", finish_reason="STOP").truncated


def test_extraction_result_row_count():
    result = ExtractionResult(records=[{"a": 1}, {"a": 2}], usage=Usage(), method="json")

    assert result.row_count == 2


def test_excerpt_is_bounded():
    assert excerpt("short") == "short"
    assert excerpt(None) == ""
    assert excerpt(b"\xffabc") == "�abc"
    assert excerpt("x" * 150) == "x" * 100 + "..."
    assert excerpt("x" * 150, 10) == "x" * 10 + "..."


def test_errors_carry_excerpt():
    error = DocsheetError("failed", excerpt="partial")

    assert str(error) == "failed"
    assert error.excerpt == "partial"
