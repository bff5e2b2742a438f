from datetime import datetime
from typing import Any, Dict
from jose import jwt
from session_service.config import settings


JWT_SECRET_KEY = settings.JWT_SECRET_KEY
JWT_ALGORITHM = settings.JWT_ALGORITHM


# ---------------------------------------------------
# TOKEN GENERATION
# ---------------------------------------------------

def create_access_token(user_id: str, session_token: str, expires_at: datetime) -> str:
    """The access token lives exactly as long as the server-side session."""
    to_encode = {"sub": user_id, "sid": session_token, "exp": expires_at}
    return jwt.encode(to_encode, JWT_SECRET_KEY, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str) -> Dict[str, Any]:
    return jwt.decode(token, JWT_SECRET_KEY, algorithms=[JWT_ALGORITHM])
