import json
import time

from sqlmodel import Session, select

from agriconnect.db.session import engine
from agriconnect.main import app
from agriconnect.models.chat_message import ChatMessage
from agriconnect.models.enums import ChatChannel
from agriconnect.services.assistant import ASSISTANT_NAME
from agriconnect.services.private_chat import FALLBACK_REPLY, GREETING
from tests.conftest import BrokenStore, FakeResponder, seed_messages


def _send(ws, text, user=None):
    data = {'text': text}
    if user is not None:
        data['user'] = user
    ws.send_text(json.dumps({'event': 'send_private_message', 'data': data}))


def _open(ws):
    greeting = ws.receive_json()
    history = ws.receive_json()
    assert history['event'] == 'private_chat_history'
    return greeting, history['data']


def _private_rows():
    with Session(engine) as session:
        statement = select(ChatMessage).where(ChatMessage.channel == ChatChannel.PRIVATE)
        return list(session.exec(statement).all())


def test_connect_sends_greeting_then_recent_history(client, responder):
    seed_messages(ChatChannel.PRIVATE, 25)
    seed_messages(ChatChannel.COMMUNITY, 3, prefix='community')

    with client.websocket_connect('/private-chat') as ws:
        greeting, history = _open(ws)

    assert greeting['event'] == 'receive_private_message'
    assert greeting['data']['user'] == ASSISTANT_NAME
    assert greeting['data']['text'] == GREETING
    assert 'id' not in greeting['data']

    assert [item['text'] for item in history] == [f"msg-{index}" for index in range(5, 25)]
    stamps = [item['timestamp'] for item in history]
    assert stamps == sorted(stamps)
    assert len(set(stamps)) == len(stamps)
    assert len(_private_rows()) == 25


def test_message_is_echoed_then_answered(client, responder):
    with client.websocket_connect('/private-chat') as ws:
        _open(ws)
        _send(ws, '  good morning  ')
        echo = ws.receive_json()
        reply = ws.receive_json()

    assert echo['event'] == reply['event'] == 'receive_private_message'
    assert echo['data']['user'] == 'Anonymous Farmer'
    assert echo['data']['text'] == 'good morning'
    assert echo['data']['id']
    assert reply['data']['user'] == ASSISTANT_NAME
    assert reply['data']['text'] == 'reply to good morning'
    assert reply['data']['id'] != echo['data']['id']
    assert responder.calls == ['good morning']

    rows = _private_rows()
    assert sorted(row.author for row in rows) == sorted(['Anonymous Farmer', ASSISTANT_NAME])


def test_named_user_keeps_author(client, responder):
    with client.websocket_connect('/private-chat') as ws:
        _open(ws)
        _send(ws, 'good morning', user='Kofi')
        echo = ws.receive_json()
        ws.receive_json()
    assert echo['data']['user'] == 'Kofi'


def test_blank_and_malformed_frames_are_ignored(client, responder):
    with client.websocket_connect('/private-chat') as ws:
        _open(ws)
        _send(ws, '   ')
        ws.send_text('not json')
        ws.send_text(json.dumps({'event': 'unknown_event', 'data': {'text': 'x'}}))
        _send(ws, 'first real message')
        echo = ws.receive_json()
        ws.receive_json()

    assert echo['data']['text'] == 'first real message'
    assert responder.calls == ['first real message']
    assert len(_private_rows()) == 2


def test_replies_go_only_to_the_sender(client, responder):
    with client.websocket_connect('/private-chat') as first, client.websocket_connect('/private-chat') as second:
        _open(first)
        _open(second)

        _send(first, 'from first')
        assert first.receive_json()['data']['text'] == 'from first'
        assert first.receive_json()['data']['text'] == 'reply to from first'

        _send(second, 'from second')
        assert second.receive_json()['data']['text'] == 'from second'
        assert second.receive_json()['data']['text'] == 'reply to from second'


def test_slow_responder_hits_reply_timeout(client, monkeypatch):
    handler = app.state.private_chat
    monkeypatch.setattr(handler, 'responder', FakeResponder(delay=5))
    monkeypatch.setattr(handler, 'reply_timeout', 0.05)

    with client.websocket_connect('/private-chat') as ws:
        _open(ws)
        _send(ws, 'good morning')
        echo = ws.receive_json()
        fallback = ws.receive_json()

    assert echo['data']['text'] == 'good morning'
    assert fallback['data']['user'] == ASSISTANT_NAME
    assert fallback['data']['text'] == FALLBACK_REPLY
    assert fallback['data']['id']
    assert [row.text for row in _private_rows() if row.author == ASSISTANT_NAME] == [FALLBACK_REPLY]


def test_store_failure_still_delivers_fallback(client, responder, monkeypatch):
    broken = BrokenStore()
    monkeypatch.setattr(app.state.private_chat, 'store', broken)

    with client.websocket_connect('/private-chat') as ws:
        _, history = _open(ws)
        _send(ws, 'good morning')
        fallback = ws.receive_json()

    assert history == []
    assert fallback['data']['text'] == FALLBACK_REPLY
    assert 'id' not in fallback['data']
    assert broken.save_attempts == 2
    assert responder.calls == []


def test_history_failure_keeps_connection_open(client, responder, monkeypatch):
    monkeypatch.setattr(app.state.private_chat, 'store', BrokenStore(fail_reads=True))

    with client.websocket_connect('/private-chat') as ws:
        greeting = ws.receive_json()
        _send(ws, 'good morning')
        fallback = ws.receive_json()

    assert greeting['data']['text'] == GREETING
    assert fallback['data']['text'] == FALLBACK_REPLY


class ExplodingResponder:
    async def respond(self, user_input: str) -> str:
        raise RuntimeError('backend bug')


def test_unexpected_responder_error_still_sends_fallback(client, monkeypatch):
    monkeypatch.setattr(app.state.private_chat, 'responder', ExplodingResponder())

    with client.websocket_connect('/private-chat') as ws:
        _open(ws)
        _send(ws, 'good morning')
        echo = ws.receive_json()
        fallback = ws.receive_json()

    assert echo['data']['text'] == 'good morning'
    assert fallback['data']['text'] == FALLBACK_REPLY
    assert fallback['data']['id']
    assert sorted(row.text for row in _private_rows()) == sorted(['good morning', FALLBACK_REPLY])


def test_reply_is_persisted_after_client_disconnects(client, monkeypatch):
    monkeypatch.setattr(app.state.private_chat, 'responder', FakeResponder(delay=0.3))

    with client.websocket_connect('/private-chat') as ws:
        _open(ws)
        _send(ws, 'good morning')
        assert ws.receive_json()['data']['text'] == 'good morning'

    deadline = time.monotonic() + 3
    while time.monotonic() < deadline:
        if len(_private_rows()) == 2:
            break
        time.sleep(0.05)

    rows = {(row.author, row.text) for row in _private_rows()}
    assert rows == {('Anonymous Farmer', 'good morning'), (ASSISTANT_NAME, 'reply to good morning')}


def test_binary_frame_does_not_end_session(client, responder):
    with client.websocket_connect('/private-chat') as ws:
        _open(ws)
        ws.send_bytes(b'\x00\x01')
        _send(ws, 'still here')
        echo = ws.receive_json()
        reply = ws.receive_json()

    assert echo['data']['text'] == 'still here'
    assert reply['data']['text'] == 'reply to still here'
