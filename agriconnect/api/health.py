from datetime import datetime, timezone

from fastapi import APIRouter, Request

router = APIRouter()


async def _store_connected(request: Request) -> bool:
    return await request.app.state.store.ping()


@router.get('/health')
async def health(request: Request) -> dict:
    return {
        'status': 'healthy',
        'timestamp': datetime.now(timezone.utc).isoformat(),
        'storeConnected': await _store_connected(request),
    }


@router.get('/test')
async def smoke_test(request: Request) -> dict:
    return {
        'message': '✅ API test route is working!',
        'timestamp': datetime.now(timezone.utc).isoformat(),
        'storeConnected': await _store_connected(request),
    }
