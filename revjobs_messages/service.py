from typing import List
from prometheus_client import Counter
from .exceptions import MessageNotFound
from .models.messages import Message
from .repository import MessageRepository
from .schemas.messages import MessageOut
import logging

logger = logging.getLogger(__name__)

MESSAGE_QUEUE = '/queue/messages'

MESSAGES_SENT = Counter('messages_sent_total', 'Messages persisted and pushed to the receiver')
MESSAGES_MARKED_READ = Counter('messages_marked_read_total', 'Messages flipped to read')


class MessageService:
    """
    Direct messages between two users.

    `notifier` is anything with an async send_to_user(user_id, destination, payload),
    normally the websocket manager.
    """

    def __init__(self, repository: MessageRepository, notifier):
        self.repository = repository
        self.notifier = notifier

    async def send_message(self, message: Message) -> Message:
        saved = await self.repository.save(message)
        payload = MessageOut.from_message(saved).to_json()
        await self.notifier.send_to_user(str(saved.receiver_id), MESSAGE_QUEUE, payload)
        MESSAGES_SENT.inc()
        logger.info({'msg': 'message_sent', 'id': saved.id,
                     'sender_id': saved.sender_id, 'receiver_id': saved.receiver_id})
        return saved

    async def get_conversation(self, user1_id: int, user2_id: int) -> List[Message]:
        return await self.repository.find_conversation(user1_id, user2_id)

    async def get_user_messages(self, user_id: int) -> List[Message]:
        return await self.repository.find_by_participant(user_id)

    async def get_unread_messages(self, user_id: int) -> List[Message]:
        return await self.repository.find_unread_for_receiver(user_id)

    async def get_unread_count(self, user_id: int) -> int:
        return await self.repository.count_unread_for_receiver(user_id)

    async def mark_as_read(self, message_id: str) -> Message:
        message = await self.repository.find_by_id(message_id)
        if message is None:
            raise MessageNotFound(message_id)
        message.is_read = True
        saved = await self.repository.save(message)
        MESSAGES_MARKED_READ.inc()
        logger.info({'msg': 'message_read', 'id': message_id})
        return saved

    async def mark_conversation_as_read(self, user_id: int, other_user_id: int) -> None:
        # every unread message of the receiver is flipped, other_user_id does not narrow it
        unread = await self.repository.find_unread_for_receiver(user_id)
        for message in unread:
            message.is_read = True
        await self.repository.save_all(unread)
        MESSAGES_MARKED_READ.inc(len(unread))
        logger.info({'msg': 'conversation_read', 'user_id': user_id,
                     'other_user_id': other_user_id, 'count': len(unread)})
