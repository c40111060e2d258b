import pytest
from httpx import ASGITransport, AsyncClient
from friendlink.main import app

@pytest.mark.asyncio
async def test_healthz():
    async with AsyncClient(transport=ASGITransport(app=app), base_url='http://test') as ac:
        res = await ac.get('/healthz')
        assert res.status_code == 200
        assert res.json() == {'status': 'ok'}

@pytest.mark.asyncio
async def test_friend_routes_require_token():
    async with AsyncClient(transport=ASGITransport(app=app), base_url='http://test') as ac:
        res = await ac.get('/api/friend-requests/')
        assert res.status_code == 401
        res = await ac.get('/api/notifications/my', headers={'Authorization': 'Bearer not-a-jwt'})
        assert res.status_code == 401
