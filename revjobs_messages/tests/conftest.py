import uuid
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from mongomock_motor import AsyncMongoMockClient

from revjobs_messages.main import app
from revjobs_messages.repository import MessageRepository
from revjobs_messages.routes.messages import get_message_service
from revjobs_messages.service import MessageService


class RecordingNotifier:
    """Stands in for the websocket manager and remembers every push"""

    def __init__(self):
        self.sent = []

    async def send_to_user(self, user_id, destination, payload):
        self.sent.append((user_id, destination, payload))


@pytest.fixture
def collection():
    return AsyncMongoMockClient()[f'revjobs_test_{uuid.uuid4().hex[:8]}']['messages']

@pytest.fixture
def repository(collection):
    return MessageRepository(collection)

@pytest.fixture
def notifier():
    return RecordingNotifier()

@pytest.fixture
def service(repository, notifier):
    return MessageService(repository, notifier)

@pytest_asyncio.fixture
async def client(service):
    app.dependency_overrides[get_message_service] = lambda: service
    async with AsyncClient(transport=ASGITransport(app=app), base_url='http://test') as ac:
        yield ac
    app.dependency_overrides.clear()
