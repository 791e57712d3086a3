"""Tests for conversation, tool and debt data models."""

import pytest

from debtchat.models import (
    ChatResponse,
    ChatResponseUpdate,
    ConversationHistory,
    DebtApiEnvelope,
    DebtRecord,
    Message,
    Role,
    ToolCall,
    messages_from_updates,
)


class TestMessageWire:
    """Tests for Message.to_wire."""

    def test_plain_message(self):
        assert Message(role=Role.USER, content="Hi").to_wire() == {"role": "user", "content": "Hi"}

    def test_assistant_with_tool_calls(self):
        call = ToolCall(id="call_1", name="get_current_date")
        wire = Message(role=Role.ASSISTANT, tool_calls=[call]).to_wire()

        assert wire["content"] is None
        assert wire["tool_calls"] == [
            {"id": "call_1", "type": "function", "function": {"name": "get_current_date", "arguments": "{}"}}
        ]

    def test_tool_result(self):
        wire = Message(role=Role.TOOL, content="2025-06-15", tool_call_id="call_1").to_wire()
        assert wire == {"role": "tool", "tool_call_id": "call_1", "content": "2025-06-15"}


class TestConversationHistory:
    """Tests for ConversationHistory."""

    def test_with_system_prompt(self):
        history = ConversationHistory.with_system_prompt("Be helpful.")
        assert len(history) == 1
        assert history.messages_dict == [{"role": "system", "content": "Be helpful."}]

    def test_reset_keeps_system_message(self):
        history = ConversationHistory.with_system_prompt("Be helpful.")
        history.add_message(Role.USER, "Hi")
        history.add_message(Role.ASSISTANT, "Hello")

        history.reset()

        assert [m.role for m in history.messages] == [Role.SYSTEM]
        assert history.messages[0].content == "Be helpful."


class TestChatResponse:
    def test_text_joins_assistant_content(self):
        response = ChatResponse(
            messages=[
                Message(role=Role.ASSISTANT, tool_calls=[ToolCall(id="c", name="get_current_date")]),
                Message(role=Role.TOOL, content="2025-06-15", tool_call_id="c"),
                Message(role=Role.ASSISTANT, content="Today is 2025-06-15."),
            ]
        )
        assert response.text == "Today is 2025-06-15."

    def test_text_none_when_empty(self):
        assert ChatResponse().text is None


class TestMessagesFromUpdates:
    """Tests for coalescing streamed updates."""

    def test_consecutive_text_merged(self):
        messages = messages_from_updates([ChatResponseUpdate(text="A"), ChatResponseUpdate(text="B")])
        assert len(messages) == 1
        assert messages[0].role == Role.ASSISTANT
        assert messages[0].content == "AB"

    def test_text_and_tool_calls_share_message(self):
        call = ToolCall(id="call_1", name="get_us_debt")
        messages = messages_from_updates(
            [
                ChatResponseUpdate(text="Let me check. "),
                ChatResponseUpdate(tool_calls=[call]),
                ChatResponseUpdate(role=Role.TOOL, tool_result="{}", tool_call_id="call_1", message_index=1),
            ]
        )
        assert [m.role for m in messages] == [Role.ASSISTANT, Role.TOOL]
        assert messages[0].content == "Let me check. "
        assert messages[0].tool_calls == [call]
        assert messages[1].tool_call_id == "call_1"

    def test_empty_assistant_dropped(self):
        assert messages_from_updates([ChatResponseUpdate(text="")]) == []

    def test_no_updates(self):
        assert messages_from_updates([]) == []

    def test_negative_index_rejected(self):
        with pytest.raises(ValueError):
            ChatResponseUpdate(text="A", message_index=-1)


class TestDebtModels:
    """Tests for Treasury payload models."""

    def test_envelope_aliases(self, debt_payload):
        envelope = DebtApiEnvelope.model_validate(debt_payload)
        assert envelope.meta.total_count == 7900
        assert envelope.meta.total_pages == 3950
        assert envelope.data[1].record_date == "2024-12-30"

    def test_record_dump_by_alias_uses_wire_names(self, debt_payload):
        record = DebtRecord.model_validate(debt_payload["data"][0])
        assert record.model_dump(by_alias=True) == debt_payload["data"][0]

    def test_amounts_kept_exact(self):
        record = DebtRecord(
            record_date="2024-12-31",
            total_public_debt_outstanding="36218605311689.45",
            debt_held_by_public="1",
            intragovernmental_holdings="2",
        )
        assert record.total_public_debt_outstanding == "36218605311689.45"
