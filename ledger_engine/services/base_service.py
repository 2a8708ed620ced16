"""
Base service class.

Every engine service holds the caller's session and a logger bound to its
own name. Operations that own a unit of work are wrapped in
``@transaction``; building blocks called from inside them never commit.
"""

import functools
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from ledger_engine.utils.exceptions import EngineError

T = TypeVar("T")


class BaseService:
    """Session holder with a service-scoped logger."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.logger = logger.bind(service=self.__class__.__name__)


def transaction(
    func: Callable[..., Awaitable[T]],
) -> Callable[..., Awaitable[T]]:
    """
    Run a service method as one unit of work.

    Commits when the method returns. On any exception the session is
    rolled back and the exception re-raised: EngineError is an expected
    rejection and logged as a warning with its reason code, anything else
    is logged as an error with traceback.

    Usage:
        @transaction
        async def approve_deposit(self, deposit_id, ...):
            ...
    """

    @functools.wraps(func)
    async def wrapper(self: BaseService, *args: Any, **kwargs: Any) -> T:
        operation = func.__name__
        try:
            result = await func(self, *args, **kwargs)
            await self.session.commit()
        except EngineError as e:
            await self.session.rollback()
            self.logger.warning(
                f"{operation} rejected: {e.reason}",
                extra={"operation": operation, "reason": e.reason},
            )
            raise
        except Exception as e:
            await self.session.rollback()
            self.logger.error(
                f"{operation} failed, transaction rolled back",
                extra={"operation": operation, "error": str(e)},
                exc_info=True,
            )
            raise
        return result

    return wrapper
