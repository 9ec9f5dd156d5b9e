"""
Bounded calls into the identity store and credential verifier.

Every collaborator call goes through ``call_collaborator`` so that a slow or
broken backend shows up as a retryable ``CollaboratorFailure`` instead of
hanging the request or being mistaken for "not found" / "deny".
"""
import asyncio
import logging
from typing import Awaitable, TypeVar

from sqlalchemy.exc import SQLAlchemyError

from app.core.enums import FailureCode
from app.core.exceptions import CollaboratorFailure, ServiceError

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def call_collaborator(name: str, awaitable: Awaitable[T], timeout: float) -> T:
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except ServiceError:
        raise
    except asyncio.TimeoutError as e:
        logger.warning("%s did not answer within %.2fs", name, timeout)
        raise CollaboratorFailure(FailureCode.TIMEOUT, f"{name} timed out") from e
    except (SQLAlchemyError, OSError) as e:
        logger.warning("%s unavailable: %s", name, e)
        raise CollaboratorFailure(FailureCode.UNAVAILABLE, f"{name} unavailable") from e
