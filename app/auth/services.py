import logging
from datetime import datetime, timezone

from app.auth.store import CredentialVerifier, IdentityStore
from app.core.collaborators import call_collaborator
from app.core.enums import FailureCode
from app.core.exceptions import AuthFailure
from app.core.schemas import Principal

logger = logging.getLogger(__name__)


class SessionCoordinator:
    """Turns a username/password pair into a ``Principal``.

    Stateless per call. The returned principal snapshots the role at login
    time and is not refreshed on later role changes.
    """

    def __init__(
        self,
        identity_store: IdentityStore,
        verifier: CredentialVerifier,
        collaborator_timeout: float = 5.0,
        record_last_login: bool = True,
    ) -> None:
        self._identity_store = identity_store
        self._verifier = verifier
        self._timeout = collaborator_timeout
        self._record_last_login = record_last_login

    async def authenticate(self, username: str, password: str) -> Principal:
        # 1. Find user by username (stored stripped at registration)
        username = username.strip()
        user = await call_collaborator(
            "identity store", self._identity_store.find_by_username(username), self._timeout
        )
        if user is None:
            logger.info("Login rejected: unknown user %r", username)
            raise AuthFailure(FailureCode.UNKNOWN_USER)

        # 2. Verify password hash
        matches = await call_collaborator(
            "credential verifier", self._verifier.verify(password, user.password_hash), self._timeout
        )
        if not matches:
            logger.info("Login rejected: bad credential for user %s", user.id)
            raise AuthFailure(FailureCode.BAD_CREDENTIAL)

        # 3. Record last login
        if self._record_last_login:
            stamped = user.model_copy(update={"last_login_at": datetime.now(timezone.utc)})
            await call_collaborator("identity store", self._identity_store.save(stamped), self._timeout)

        logger.info("User %s logged in as %s", user.id, user.role.value)
        return Principal(user_id=user.id, role=user.role)
