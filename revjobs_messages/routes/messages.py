from fastapi import APIRouter, Depends, Query
from ..schemas.messages import MessageIn, MessageOut, envelope
from ..repository import MessageRepository
from ..service import MessageService
from ..ws_manager import manager
from .. import core

router = APIRouter()

def get_message_service() -> MessageService:
    return MessageService(MessageRepository(core.messages_collection()), manager)

def _out(messages):
    return [MessageOut.from_message(m).to_json() for m in messages]

@router.post('')
async def send(payload: MessageIn, service: MessageService = Depends(get_message_service)):
    m = await service.send_message(payload.to_message())
    return envelope(MessageOut.from_message(m).to_json())

@router.get('/conversation')
async def conversation(user1_id: int = Query(..., alias='user1Id'),
                       user2_id: int = Query(..., alias='user2Id'),
                       service: MessageService = Depends(get_message_service)):
    return envelope(_out(await service.get_conversation(user1_id, user2_id)))

@router.get('/user/{user_id}')
async def user_messages(user_id: int, service: MessageService = Depends(get_message_service)):
    return envelope(_out(await service.get_user_messages(user_id)))

@router.get('/user/{user_id}/unread')
async def unread_messages(user_id: int, service: MessageService = Depends(get_message_service)):
    return envelope(_out(await service.get_unread_messages(user_id)))

@router.get('/user/{user_id}/unread/count')
async def unread_count(user_id: int, service: MessageService = Depends(get_message_service)):
    return envelope(await service.get_unread_count(user_id))

# registered before /{message_id}/read so "conversation" is not taken as an id
@router.patch('/conversation/read')
async def conversation_read(user_id: int = Query(..., alias='userId'),
                            other_user_id: int = Query(..., alias='otherUserId'),
                            service: MessageService = Depends(get_message_service)):
    await service.mark_conversation_as_read(user_id, other_user_id)
    return envelope(message='Conversation marked as read')

@router.patch('/{message_id}/read')
async def read(message_id: str, service: MessageService = Depends(get_message_service)):
    m = await service.mark_as_read(message_id)
    return envelope(MessageOut.from_message(m).to_json())
