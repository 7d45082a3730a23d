"""Sign-in and login sessions.

Verifying who a user is belongs to the identity provider; the server only
checks the provider's signed identity token and then hands out its own
session token so a reconnecting client can get its identity back.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from pokerledger import db
from pokerledger.errors import AuthenticationFailed
from pokerledger.models import AuthSession, User


@dataclass
class Identity:
    subject: str
    name: str
    email: Optional[str] = None


class SignedTokenVerifier:
    """Verifies identity tokens signed with the shared ``SECRET_KEY``.

    Any object with a ``verify(credential) -> Identity`` method can replace
    it (see ``create_app(identity_verifier=...)``).
    """

    salt = 'pokerledger-identity'

    def __init__(self, secret_key: str, max_age: int = 3600):
        self._serializer = URLSafeTimedSerializer(secret_key, salt=self.salt)
        self._max_age = max_age

    def issue(self, subject: str, name: str, email: Optional[str] = None) -> str:
        return self._serializer.dumps({'sub': subject, 'name': name, 'email': email})

    def verify(self, credential) -> Identity:
        if not isinstance(credential, str) or not credential:
            raise AuthenticationFailed('Missing credential')
        try:
            claims = self._serializer.loads(credential, max_age=self._max_age)
        except SignatureExpired:
            raise AuthenticationFailed('Credential expired')
        except BadSignature:
            raise AuthenticationFailed('Invalid credential')
        if not isinstance(claims, dict) or not claims.get('sub'):
            raise AuthenticationFailed('Credential has no subject')
        name = (claims.get('name') or '').strip() or claims['sub']
        return Identity(subject=str(claims['sub']), name=name[:64], email=claims.get('email'))


def upsert_user(identity: Identity) -> User:
    user = User.query.filter_by(subject=identity.subject).first()
    if user is None:
        user = User(subject=identity.subject, display_name=identity.name, email=identity.email)
        db.session.add(user)
    else:
        user.display_name = identity.name
        if identity.email:
            user.email = identity.email
    db.session.commit()
    return user


def open_session(user: User, ttl_sec: int) -> AuthSession:
    session = AuthSession(user_id=user.id, expires_at=datetime.now(timezone.utc) + timedelta(seconds=ttl_sec))
    db.session.add(session)
    db.session.commit()
    return session


def resolve_session(token) -> Optional[User]:
    """Return the user behind a session token, or None when the token is
    unknown or past its expiry (expired rows are removed on the spot)."""
    if not isinstance(token, str) or not token:
        return None
    session = AuthSession.query.filter_by(token=token).first()
    if session is None:
        return None
    if session.is_expired():
        db.session.delete(session)
        db.session.commit()
        return None
    return session.user


def end_session(token) -> bool:
    if not isinstance(token, str) or not token:
        return False
    deleted = AuthSession.query.filter_by(token=token).delete()
    db.session.commit()
    return bool(deleted)


def purge_expired_sessions(now=None) -> int:
    now = now or datetime.now(timezone.utc)
    deleted = AuthSession.query.filter(AuthSession.expires_at <= now).delete(synchronize_session=False)
    db.session.commit()
    return deleted
