"""Tests for the Evolution-backed session (HTTP mocked)."""

import base64
from unittest.mock import MagicMock, patch

import pytest
import requests

from wabridge.whatsapp.models import MediaHandle, QRCodeEvent
from wabridge.whatsapp.session import EventStream, EvolutionSession, SessionError

PNG = b"\x89PNG\r\n\x1a\n" + b"\x01" * 8


@pytest.fixture
def gateway():
    return EvolutionSession(
        base_url="http://evo.test/",
        instance="bridge",
        api_key="test-api-key",
        timeout=7.0,
    )


def _response(body, status_code=200):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = body
    response.raise_for_status.return_value = None
    return response


class TestSendText:
    def test_posts_to_instance_endpoint(self, gateway):
        with patch(
            "wabridge.whatsapp.session.requests.post",
            return_value=_response({"key": {"id": "3EB0SENT"}}),
        ) as post:
            message_id = gateway.send_text("5511988887777@s.whatsapp.net", "hello")

        assert message_id == "3EB0SENT"
        args, kwargs = post.call_args
        assert args[0] == "http://evo.test/message/sendText/bridge"
        assert kwargs["json"] == {"number": "5511988887777@s.whatsapp.net", "text": "hello"}
        assert kwargs["headers"] == {"apikey": "test-api-key"}
        assert kwargs["timeout"] == 7.0

    def test_missing_key_returns_empty_id(self, gateway):
        with patch("wabridge.whatsapp.session.requests.post", return_value=_response({})):
            assert gateway.send_text("1@s.whatsapp.net", "x") == ""

    def test_network_error_raises_session_error(self, gateway):
        with patch(
            "wabridge.whatsapp.session.requests.post",
            side_effect=requests.ConnectionError("refused"),
        ):
            with pytest.raises(SessionError):
                gateway.send_text("1@s.whatsapp.net", "x")

    def test_http_error_raises_session_error(self, gateway):
        response = _response({})
        response.raise_for_status.side_effect = requests.HTTPError("500")
        with patch("wabridge.whatsapp.session.requests.post", return_value=response):
            with pytest.raises(SessionError):
                gateway.send_text("1@s.whatsapp.net", "x")

    def test_invalid_json_raises_session_error(self, gateway):
        response = _response(None)
        response.json.side_effect = ValueError("no json")
        with patch("wabridge.whatsapp.session.requests.post", return_value=response):
            with pytest.raises(SessionError):
                gateway.send_text("1@s.whatsapp.net", "x")

    def test_non_object_body_raises_session_error(self, gateway):
        with patch("wabridge.whatsapp.session.requests.post", return_value=_response([1])):
            with pytest.raises(SessionError):
                gateway.send_text("1@s.whatsapp.net", "x")


class TestDownload:
    HANDLE = MediaHandle(
        message_id="IMG1",
        field="imageMessage",
        media={"mimetype": "image/jpeg", "mediaKey": "k"},
    )

    def test_decodes_base64_and_sniffs_type(self, gateway):
        body = {"base64": base64.b64encode(PNG).decode(), "mimetype": "image/jpeg"}
        with patch(
            "wabridge.whatsapp.session.requests.post", return_value=_response(body)
        ) as post:
            media = gateway.download(self.HANDLE)

        assert media.data == PNG
        assert media.content_type == "image/png"
        args, kwargs = post.call_args
        assert args[0] == "http://evo.test/chat/getBase64FromMediaMessage/bridge"
        assert kwargs["json"] == {
            "message": {
                "key": {"id": "IMG1"},
                "message": {"imageMessage": {"mimetype": "image/jpeg", "mediaKey": "k"}},
            },
            "convertToMp4": False,
        }

    def test_declared_type_used_when_unsniffable(self, gateway):
        body = {"base64": base64.b64encode(b"opaque").decode()}
        with patch("wabridge.whatsapp.session.requests.post", return_value=_response(body)):
            media = gateway.download(self.HANDLE)
        assert media.content_type == "image/jpeg"

    @pytest.mark.parametrize("body", [{}, {"base64": ""}, {"base64": "!!not base64!!"}])
    def test_bad_media_raises_session_error(self, gateway, body):
        with patch("wabridge.whatsapp.session.requests.post", return_value=_response(body)):
            with pytest.raises(SessionError):
                gateway.download(self.HANDLE)


class TestIdentityAndEvents:
    def test_own_jid_settable(self, gateway):
        assert gateway.own_jid is None
        gateway.set_own_jid("5511900000000@s.whatsapp.net")
        assert gateway.own_jid == "5511900000000@s.whatsapp.net"
        gateway.set_own_jid("")
        assert gateway.own_jid is None

    def test_events_fifo(self, gateway):
        gateway.push(QRCodeEvent("a"))
        gateway.push(QRCodeEvent("b"))
        assert gateway.next_event(timeout=0) == QRCodeEvent("a")
        assert gateway.next_event(timeout=0) == QRCodeEvent("b")
        assert gateway.next_event(timeout=0.01) is None

    def test_event_stream_timeout(self):
        assert EventStream().next_event(timeout=0.01) is None
