"""Unit tests for backend → channel activity conversion."""

from __future__ import annotations

from relaybridge.backend.models import Activity
from relaybridge.core.relay.converter import convert_activities, convert_activity
from tests.fakes import agent_msg


class TestConvertActivity:
    def test_copies_presentation_fields(self):
        src = Activity.model_validate(
            {
                "type": "message",
                "id": "dl-conv-1|0000003",
                "from": {"id": "bot", "name": "Contoso Agent"},
                "text": "Pick one",
                "textFormat": "markdown",
                "locale": "en-US",
                "speak": "Pick one",
                "inputHint": "expectingInput",
                "attachmentLayout": "carousel",
                "attachments": [{"contentType": "application/vnd.microsoft.card.hero"}],
                "suggestedActions": {"actions": [{"type": "imBack", "title": "Yes"}]},
                "channelData": {"feedback": True},
            }
        )

        out = convert_activity(src)

        assert out.type == "message"
        assert out.text == "Pick one"
        assert out.text_format == "markdown"
        assert out.locale == "en-US"
        assert out.input_hint == "expectingInput"
        assert out.attachment_layout == "carousel"
        assert out.attachments == [{"contentType": "application/vnd.microsoft.card.hero"}]
        assert out.suggested_actions == {"actions": [{"type": "imBack", "title": "Yes"}]}
        assert out.channel_data == {"feedback": True}

    def test_wire_form_uses_camel_case(self):
        src = Activity(text="hi", text_format="plain", input_hint="acceptingInput")
        out = convert_activity(src)
        wire = out.to_wire()
        assert wire["textFormat"] == "plain"
        assert wire["inputHint"] == "acceptingInput"
        assert "text_format" not in wire

    def test_backend_identity_not_copied(self):
        wire = convert_activity(agent_msg("hi")).to_wire()
        assert "from" not in wire
        assert "id" not in wire


class TestConvertActivities:
    def test_preserves_order(self):
        out = convert_activities([agent_msg("one"), agent_msg("two"), agent_msg("three")])
        assert [a.text for a in out] == ["one", "two", "three"]

    def test_empty(self):
        assert convert_activities([]) == []
