from datetime import datetime, timedelta, timezone

from fastapi import Header, HTTPException, Request
from jose import JWTError, jwt

from orderpay.errors import AuthError, InvalidCredentials, MissingCredentials

ALGORITHM = "HS256"


class CredentialVerifier:
    """Stateless bearer-token verification; every request re-verifies."""

    def __init__(self, secret: str, expires: timedelta = timedelta(days=7)):
        self.secret = secret
        self.expires = expires

    def issue(self, user_id: str) -> str:
        claims = {"sub": user_id, "exp": datetime.now(timezone.utc) + self.expires}
        return jwt.encode(claims, self.secret, algorithm=ALGORITHM)

    def verify(self, authorization: str | None) -> str:
        if not authorization:
            raise MissingCredentials("No token")

        parts = authorization.split()
        if len(parts) != 2 or parts[0].lower() != "bearer":
            raise MissingCredentials("Malformed authorization header")

        try:
            claims = jwt.decode(parts[1], self.secret, algorithms=[ALGORITHM])
        except JWTError as exc:
            raise InvalidCredentials("Invalid token") from exc

        user_id = claims.get("sub")
        if not user_id:
            raise InvalidCredentials("Token has no subject")
        return user_id


def current_user_id(request: Request, authorization: str = Header(None)) -> str:
    verifier: CredentialVerifier = request.app.state.verifier
    try:
        return verifier.verify(authorization)
    except AuthError as exc:
        raise HTTPException(status_code=401, detail=str(exc))
