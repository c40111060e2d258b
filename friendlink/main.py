import asyncio
import os
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from .routes import router
from . import core
from .core import redis_startup, init_metrics, shutdown_connections
from .delivery import RedisDeliveryChannel, NOTIFICATIONS_CHANNEL
from .errors import FriendlinkError
from .greetings import default_greeting_service
from .ws_manager import ConnectionManager
import logging
from pythonjsonlogger import jsonlogger

# setup structured logging
logger = logging.getLogger('friendlink')
handler = logging.StreamHandler()
formatter = jsonlogger.JsonFormatter('%(asctime)s %(levelname)s %(name)s %(message)s')
handler.setFormatter(formatter)
logger.addHandler(handler)
logger.setLevel(os.getenv('LOG_LEVEL', 'INFO').upper())

app = FastAPI(title="Friendlink API", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=['*'],
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)

app.include_router(router, prefix="/api")

app.state.connections = ConnectionManager()
app.state.greetings = default_greeting_service()
app.state.delivery_channel = None
app.state.push_listener = None

@app.exception_handler(FriendlinkError)
async def friendlink_error_handler(request: Request, exc: FriendlinkError):
    logger.info({'msg': 'request_rejected', 'path': request.url.path, 'code': exc.code, 'detail': exc.message})
    return JSONResponse(status_code=exc.status_code, content=exc.to_response())

@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception({'msg': 'unhandled_error', 'path': request.url.path, 'error': repr(exc)})
    return JSONResponse(status_code=500, content={'detail': 'Internal server error', 'code': 'internal_error'})

@app.get('/healthz')
async def healthz():
    return {'status': 'ok'}

@app.middleware('http')
async def log_requests(request: Request, call_next):
    logger.info({'msg':'request_start','method':request.method,'path':request.url.path})
    response = await call_next(request)
    logger.info({'msg':'request_end','status': response.status_code})
    return response

@app.on_event("startup")
async def startup():
    # Best-effort init, don't block app from starting if a dependency fails
    try:
        await redis_startup()
    except Exception as e:
        logger.warning({'msg': 'redis_start_failed', 'error': str(e)})
    try:
        init_metrics()
    except Exception as e:
        logger.warning({'msg': 'metrics_init_failed', 'error': str(e)})

    redis = core.get_redis()
    if redis is not None:
        # pushes go through redis so users connected to other instances get them too
        app.state.delivery_channel = RedisDeliveryChannel(redis, NOTIFICATIONS_CHANNEL)
        app.state.push_listener = asyncio.create_task(
            app.state.connections.start_redis_listener(redis, NOTIFICATIONS_CHANNEL)
        )
    else:
        logger.warning({'msg': 'redis_unavailable', 'delivery': 'local'})

@app.on_event("shutdown")
async def shutdown():
    task = app.state.push_listener
    if task is not None:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
    await shutdown_connections()
