import base64
import math

import pytest

from docsheet.client import (
    build_chat_contents,
    build_chat_payload,
    build_extraction_payload,
    extraction_prompt,
)
from docsheet.constants import (
    CONTEXT_ACKNOWLEDGEMENT,
    DEFAULT_EXTRACTION_INSTRUCTION,
    STRICT_EXTRACTION_DIRECTIVE,
)
from docsheet.core.types import Attachment, ChatTurn, GenerationRequest
from docsheet.exceptions import InvalidRequestError

pytestmark = pytest.mark.unit

PDF = Attachment(data=b"%PDF-1.7 fake", mime_type="application/pdf")


class TestExtractionPayload:
    def test_document_precedes_instruction_in_one_user_turn(self):
        request = GenerationRequest(instruction="List every question", document=PDF)

        payload = build_extraction_payload(request)

        (content,) = payload["contents"]
        assert content["role"] == "user"
        document_part, text_part = content["parts"]
        assert document_part == {
            "inlineData": {
                "mimeType": "application/pdf",
                "data": base64.b64encode(b"%PDF-1.7 fake").decode("ascii"),
            }
        }
        assert text_part["text"].startswith("List every question\n\n")
        assert text_part["text"].endswith(STRICT_EXTRACTION_DIRECTIVE)

    def test_without_document_only_text_is_sent(self):
        payload = build_extraction_payload(GenerationRequest(instruction="Summarize"))

        (content,) = payload["contents"]
        assert [list(part) for part in content["parts"]] == [["text"]]

    def test_generation_config_defaults_to_deterministic_large_output(self):
        payload = build_extraction_payload(GenerationRequest(instruction="x"))

        assert payload["generationConfig"] == {
            "temperature": 0.0,
            "maxOutputTokens": 65_535,
        }

    def test_blank_instruction_uses_default(self):
        prompt = extraction_prompt("   ")

        assert prompt.startswith(DEFAULT_EXTRACTION_INSTRUCTION)
        assert "STRICT EXTRACTION RULES" in prompt


class TestTemperatureValidation:
    @pytest.mark.parametrize("temperature", [-0.1, 1.01, 2, math.nan, math.inf])
    def test_out_of_range_temperature_is_rejected(self, temperature):
        with pytest.raises(InvalidRequestError, match="temperature"):
            GenerationRequest(instruction="x", temperature=temperature)

    @pytest.mark.parametrize("temperature", [0, 0.0, 0.35, 1])
    def test_boundary_temperatures_are_kept(self, temperature):
        request = GenerationRequest(instruction="x", temperature=temperature)

        assert request.temperature == float(temperature)

    def test_bool_is_not_a_temperature(self):
        with pytest.raises(InvalidRequestError):
            GenerationRequest(instruction="x", temperature=True)

    def test_max_output_tokens_must_be_positive(self):
        with pytest.raises(InvalidRequestError, match="max_output_tokens"):
            GenerationRequest(instruction="x", max_output_tokens=0)


class TestChatContents:
    def test_history_is_mapped_to_provider_roles(self):
        history = [
            ChatTurn("user", "What is in section B?"),
            ChatTurn("assistant", "Five questions."),
            ChatTurn("user", "List them."),
        ]

        contents = build_chat_contents(history)

        assert [c["role"] for c in contents] == ["user", "model", "user"]
        assert contents[-1]["parts"] == [{"text": "List them."}]

    def test_context_opens_with_acknowledged_exchange(self):
        contents = build_chat_contents(
            [ChatTurn("user", "And question 3?")], context="  Physics paper  "
        )

        assert contents[0] == {
            "role": "user",
            "parts": [{"text": "Context:\nPhysics paper"}],
        }
        assert contents[1] == {
            "role": "model",
            "parts": [{"text": CONTEXT_ACKNOWLEDGEMENT}],
        }
        assert len(contents) == 3

    def test_blank_context_is_ignored(self):
        contents = build_chat_contents([ChatTurn("user", "Hi")], context="  ")

        assert len(contents) == 1

    def test_attachments_ride_only_on_final_turn(self):
        earlier = ChatTurn("user", "Here is the paper", attachments=(PDF,))
        image = Attachment(data=b"\x89PNG", mime_type="image/png")
        history = [earlier, ChatTurn("model", "Got it."), ChatTurn("user", "Compare")]

        contents = build_chat_contents(history, attachments=[image])

        assert contents[0]["parts"] == [{"text": "Here is the paper"}]
        final_parts = contents[-1]["parts"]
        assert final_parts[0]["inlineData"]["mimeType"] == "image/png"
        assert final_parts[-1] == {"text": "Compare"}

    def test_final_turn_keeps_its_own_attachments(self):
        image = Attachment(data=b"\x89PNG", mime_type="image/png")
        history = [ChatTurn("user", "What is on this page?", attachments=(PDF,))]

        contents = build_chat_contents(history, attachments=[image])

        final_parts = contents[-1]["parts"]
        assert [p["inlineData"]["mimeType"] for p in final_parts[:-1]] == [
            "application/pdf",
            "image/png",
        ]
        assert final_parts[-1] == {"text": "What is on this page?"}

    def test_empty_history_is_rejected(self):
        with pytest.raises(InvalidRequestError, match="at least one turn"):
            build_chat_contents([])

    def test_history_must_end_with_user_turn(self):
        with pytest.raises(InvalidRequestError, match="end with a user turn"):
            build_chat_contents([ChatTurn("user", "a"), ChatTurn("model", "b")])

    def test_unknown_role_is_rejected(self):
        with pytest.raises(InvalidRequestError, match="role"):
            ChatTurn("system", "be terse")

    def test_chat_payload_carries_generation_config(self):
        payload = build_chat_payload(
            [ChatTurn("user", "Hello")], temperature=0.7, max_output_tokens=8192
        )

        assert payload["generationConfig"] == {
            "temperature": 0.7,
            "maxOutputTokens": 8192,
        }

    def test_chat_payload_rejects_bad_temperature(self):
        with pytest.raises(InvalidRequestError):
            build_chat_payload(
                [ChatTurn("user", "Hello")], temperature=1.5, max_output_tokens=10
            )
