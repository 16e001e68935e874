import os
import asyncio
import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from .routes import router
from .exceptions import MessageNotFound
from .repository import MessageRepository
from .schemas.messages import envelope
from .ws_manager import manager
from . import core
import logging
from pythonjsonlogger import jsonlogger

# setup structured logging
logger = logging.getLogger('revjobs_messages')
handler = logging.StreamHandler()
formatter = jsonlogger.JsonFormatter('%(asctime)s %(levelname)s %(name)s %(message)s')
handler.setFormatter(formatter)
logger.addHandler(handler)
logger.setLevel(os.getenv('LOG_LEVEL', 'INFO'))

app = FastAPI(title="RevJobs Messages API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=['*'],
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)

app.include_router(router)

@app.get('/healthz')
async def healthz():
    return {'status': 'ok'}

@app.exception_handler(MessageNotFound)
async def message_not_found(request: Request, exc: MessageNotFound):
    return JSONResponse(status_code=404, content=envelope(success=False, error=str(exc)))

@app.exception_handler(Exception)
async def unhandled(request: Request, exc: Exception):
    logger.exception({'msg': 'unhandled_error', 'path': request.url.path})
    return JSONResponse(status_code=500, content=envelope(success=False, error=str(exc)))

@app.middleware('http')
async def log_requests(request: Request, call_next):
    logger.info({'msg':'request_start','method':request.method,'path':request.url.path})
    response = await call_next(request)
    logger.info({'msg':'request_end','status': response.status_code})
    return response

_listener_task = None

@app.on_event("startup")
async def startup():
    global _listener_task
    # Best-effort init, don't block app from starting if a dependency fails
    try:
        await core.mongo_startup()
        if core.MONGO:
            await MessageRepository(core.messages_collection()).ensure_indexes()
    except Exception as e:
        logger.warning({'msg': 'mongo_init_failed', 'error': str(e)})
    try:
        await core.redis_startup()
        if core.REDIS:
            _listener_task = asyncio.create_task(manager.start_redis_listener())
    except Exception as e:
        logger.warning({'msg': 'redis_start_failed', 'error': str(e)})
    core.init_metrics()

@app.on_event("shutdown")
async def shutdown():
    manager.stop_redis_listener()
    if _listener_task:
        _listener_task.cancel()
    await core.shutdown_connections()

def run():
    """Console entry point: serve the API with uvicorn"""
    uvicorn.run(app, host=os.getenv('HOST', '0.0.0.0'), port=int(os.getenv('PORT', '8000')))
