import bcrypt
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from config import get_settings
from errors import UnauthorizedError


ACCESS = "access"
REFRESH = "refresh"


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, hashed_password: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        return False


def _serializer(kind: str) -> URLSafeTimedSerializer:
    settings = get_settings()
    if kind == ACCESS:
        return URLSafeTimedSerializer(settings.access_token_secret, salt="access-token")
    return URLSafeTimedSerializer(settings.refresh_token_secret, salt="refresh-token")


def _max_age(kind: str) -> int:
    settings = get_settings()
    if kind == ACCESS:
        return settings.access_token_ttl_secs
    return settings.refresh_token_ttl_secs


def generate_tokens(user_id: str, email: str) -> dict[str, str]:
    payload = {"sub": user_id, "email": email}
    return {
        "access_token": _serializer(ACCESS).dumps({**payload, "kind": ACCESS}),
        "refresh_token": _serializer(REFRESH).dumps({**payload, "kind": REFRESH}),
    }


def decode_token(token: str, kind: str = ACCESS) -> dict:
    try:
        data = _serializer(kind).loads(token, max_age=_max_age(kind))
    except SignatureExpired as exc:
        raise UnauthorizedError("Token has expired") from exc
    except BadSignature as exc:
        raise UnauthorizedError("Invalid token") from exc

    if not isinstance(data, dict) or data.get("kind") != kind or not data.get("sub"):
        raise UnauthorizedError("Invalid token")
    return data
