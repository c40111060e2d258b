import os
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import jwt, JWTError

# Prefer JWT_SECRET but support legacy JWT_SECRET_KEY for compatibility
SECRET = os.getenv('JWT_SECRET') or os.getenv('JWT_SECRET_KEY', 'devsecret')
ALGORITHM = os.getenv('JWT_ALGORITHM', 'HS256')

bearer = HTTPBearer(auto_error=False)

def decode_token(token: str):
    try:
        payload = jwt.decode(token, SECRET, algorithms=[ALGORITHM])
    except JWTError:
        return None
    try:
        payload['id'] = int(payload['id'])
    except (KeyError, TypeError, ValueError):
        return None
    return payload

async def get_current_user(credentials: HTTPAuthorizationCredentials = Depends(bearer)) -> dict:
    # tokens are minted by the identity service; we only trust their `id` claim
    if credentials is None:
        raise HTTPException(status_code=401, detail='Not authenticated')
    user = decode_token(credentials.credentials)
    if not user:
        raise HTTPException(status_code=401, detail='Invalid token')
    return user
