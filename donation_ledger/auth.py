import hmac

from fastapi import Header, HTTPException
from jose import jwt

from donation_ledger.config import get_callback_secret, get_jwt_secret


def verify_token(authorization: str = Header(None)) -> str:
    """Return the account id carried in the bearer token's ``sub`` claim."""
    try:
        scheme, token = authorization.split()
        if scheme.lower() != "bearer":
            raise ValueError("unsupported scheme")
        claims = jwt.decode(token, get_jwt_secret(), algorithms=["HS256"])
        account_id = claims["sub"]
        if not account_id:
            raise ValueError("empty subject")
        return account_id
    except Exception:
        raise HTTPException(status_code=401, detail="Invalid or missing token")


def verify_callback_token(x_callback_token: str = Header(None)) -> None:
    secret = get_callback_secret()
    if not secret or not x_callback_token or not hmac.compare_digest(
        x_callback_token.encode(), secret.encode()
    ):
        raise HTTPException(status_code=401, detail="Invalid callback token")
