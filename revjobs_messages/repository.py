"""
Message store
Query surface over the `messages` collection
"""
from typing import List, Optional
from bson import ObjectId
from pymongo import ASCENDING, DESCENDING
from .models.messages import Message, as_utc, populate_defaults
import logging

logger = logging.getLogger(__name__)

INDEXED_FIELDS = ('senderId', 'receiverId', 'sentAt')


def to_document(message: Message) -> dict:
    doc = message.model_dump(by_alias=True, exclude={'id'})
    if message.id is not None:
        doc['_id'] = ObjectId(message.id)
    return doc


def from_document(doc: dict) -> Message:
    data = dict(doc)
    data['id'] = str(data.pop('_id'))
    if data.get('sentAt') is not None:
        data['sentAt'] = as_utc(data['sentAt'])
    return Message(**data)


class MessageRepository:
    """
    Message store backed by a motor collection.
    Every write goes through populate_defaults first.
    """

    def __init__(self, collection):
        self.collection = collection

    async def ensure_indexes(self):
        for field in INDEXED_FIELDS:
            await self.collection.create_index(field)
        logger.info(f"Indexes ensured on {self.collection.name}: {INDEXED_FIELDS}")

    async def save(self, message: Message) -> Message:
        """Insert a new message or replace an existing one; assigns the id on first insert"""
        populate_defaults(message)
        doc = to_document(message)
        if message.id is None:
            result = await self.collection.insert_one(doc)
            message.id = str(result.inserted_id)
        else:
            await self.collection.replace_one({'_id': doc['_id']}, doc, upsert=True)
        return message

    async def save_all(self, messages: List[Message]) -> List[Message]:
        if not messages:
            return []
        if all(m.id is None for m in messages):
            for m in messages:
                populate_defaults(m)
            result = await self.collection.insert_many([to_document(m) for m in messages])
            for m, inserted_id in zip(messages, result.inserted_ids):
                m.id = str(inserted_id)
            return messages
        return [await self.save(m) for m in messages]

    async def find_by_id(self, message_id: str) -> Optional[Message]:
        if not ObjectId.is_valid(message_id):
            return None
        doc = await self.collection.find_one({'_id': ObjectId(message_id)})
        return from_document(doc) if doc else None

    async def find_conversation(self, user_a: int, user_b: int) -> List[Message]:
        """Both directions between two users, oldest first"""
        query = {'$or': [
            {'senderId': user_a, 'receiverId': user_b},
            {'senderId': user_b, 'receiverId': user_a},
        ]}
        return await self._find(query, ASCENDING)

    async def find_by_participant(self, user_id: int) -> List[Message]:
        """Everything the user sent or received, newest first"""
        query = {'$or': [{'senderId': user_id}, {'receiverId': user_id}]}
        return await self._find(query, DESCENDING)

    async def find_unread_for_receiver(self, user_id: int) -> List[Message]:
        return await self._find({'receiverId': user_id, 'isRead': False})

    async def count_unread_for_receiver(self, user_id: int) -> int:
        return await self.collection.count_documents({'receiverId': user_id, 'isRead': False})

    async def _find(self, query: dict, sent_at_order: int = None) -> List[Message]:
        sort = [('sentAt', sent_at_order)] if sent_at_order is not None else None
        docs = await self.collection.find(query, sort=sort).to_list(length=None)
        return [from_document(doc) for doc in docs]
