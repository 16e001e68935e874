import logging
import pytest
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock
from httpx import AsyncClient, ASGITransport
from revjobs_messages.main import app
from revjobs_messages.models.messages import Message
from revjobs_messages.routes.messages import get_message_service
from revjobs_messages.service import MessageService

BASE = datetime(2025, 6, 1, 9, 0, tzinfo=timezone.utc)


async def seed(repository, sender, receiver, content, minute=0, is_read=False):
    return await repository.save(Message(sender_id=sender, receiver_id=receiver, content=content,
                                         is_read=is_read, sent_at=BASE + timedelta(minutes=minute)))


@pytest.mark.asyncio
async def test_healthz(client):
    res = await client.get('/healthz')
    assert res.status_code == 200
    assert res.json() == {'status': 'ok'}

@pytest.mark.asyncio
async def test_send_message(client, notifier):
    res = await client.post('/messages', json={
        'senderId': 100, 'receiverId': 200,
        'content': 'Hello, interested in the position',
        'applicationId': 1, 'isRead': False,
    })
    assert res.status_code == 200, res.text
    body = res.json()
    assert body['success'] is True
    data = body['data']
    assert data['senderId'] == 100
    assert data['receiverId'] == 200
    assert data['content'] == 'Hello, interested in the position'
    assert data['isRead'] is False
    assert data['id']
    assert data['sentAt'].endswith('Z')

    assert len(notifier.sent) == 1
    user_id, destination, payload = notifier.sent[0]
    assert (user_id, destination) == ('200', '/queue/messages')
    assert payload == data

@pytest.mark.asyncio
async def test_send_message_requires_participants(client, notifier):
    res = await client.post('/messages', json={'content': 'orphan'})
    assert res.status_code == 422
    assert notifier.sent == []

@pytest.mark.asyncio
async def test_get_conversation(client, repository):
    await seed(repository, 100, 200, 'Message 1', 0)
    await seed(repository, 200, 100, 'Message 2', 1)
    await seed(repository, 100, 300, 'elsewhere', 2)

    res = await client.get('/messages/conversation', params={'user1Id': 100, 'user2Id': 200})
    assert res.status_code == 200
    body = res.json()
    assert body['success'] is True
    assert [m['content'] for m in body['data']] == ['Message 1', 'Message 2']

@pytest.mark.asyncio
async def test_get_user_messages(client, repository):
    await seed(repository, 100, 200, 'Test message')

    res = await client.get('/messages/user/100')
    assert res.status_code == 200
    assert res.json()['success'] is True
    assert len(res.json()['data']) == 1

@pytest.mark.asyncio
async def test_get_unread_messages_returns_only_unread(client, repository):
    await seed(repository, 100, 200, 'Unread message')
    await seed(repository, 100, 200, 'Read message', 1, is_read=True)

    res = await client.get('/messages/user/200/unread')
    data = res.json()['data']
    assert len(data) == 1
    assert data[0]['isRead'] is False
    assert data[0]['content'] == 'Unread message'

@pytest.mark.asyncio
async def test_get_unread_count(client, repository):
    for i in range(3):
        await seed(repository, 100, 200, f'Unread {i}', i)

    res = await client.get('/messages/user/200/unread/count')
    assert res.status_code == 200
    assert res.json() == {'success': True, 'data': 3}

@pytest.mark.asyncio
async def test_mark_as_read(client, repository):
    saved = await seed(repository, 100, 200, 'Test message')

    res = await client.patch(f'/messages/{saved.id}/read')
    assert res.status_code == 200
    assert res.json()['success'] is True
    assert res.json()['data']['isRead'] is True
    assert (await repository.find_by_id(saved.id)).is_read is True

@pytest.mark.asyncio
async def test_mark_as_read_not_found(client):
    res = await client.patch('/messages/invalid123/read')
    assert res.status_code == 404
    assert res.json() == {'success': False, 'error': 'Message not found'}

@pytest.mark.asyncio
async def test_mark_conversation_as_read(client, repository):
    for i in range(2):
        await seed(repository, 200, 100, f'Unread {i}', i)

    res = await client.patch('/messages/conversation/read', params={'userId': 100, 'otherUserId': 200})
    assert res.status_code == 200
    assert res.json() == {'success': True, 'message': 'Conversation marked as read'}
    assert await repository.count_unread_for_receiver(100) == 0

@pytest.mark.asyncio
async def test_send_message_without_content(client, notifier):
    res = await client.post('/messages', json={'senderId': 100, 'receiverId': 200})
    assert res.status_code == 200, res.text
    assert res.json()['data']['content'] is None
    assert len(notifier.sent) == 1

@pytest.mark.asyncio
async def test_store_failure_is_a_500_envelope(notifier, caplog):
    repo = AsyncMock()
    repo.find_by_participant.side_effect = RuntimeError('mongo unavailable')
    app.dependency_overrides[get_message_service] = lambda: MessageService(repo, notifier)
    try:
        transport = ASGITransport(app=app, raise_app_exceptions=False)
        async with AsyncClient(transport=transport, base_url='http://test') as ac:
            with caplog.at_level(logging.ERROR, logger='revjobs_messages'):
                res = await ac.get('/messages/user/100')
    finally:
        app.dependency_overrides.clear()

    assert res.status_code == 500
    assert res.json() == {'success': False, 'error': 'mongo unavailable'}
    assert any(r.levelno == logging.ERROR and r.exc_info for r in caplog.records)
