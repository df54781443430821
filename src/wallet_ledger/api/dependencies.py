"""FastAPI dependency injection helpers.

Usage in a route::

    @router.get("/balance")
    async def get_balance(engine: Annotated[LedgerEngine, Depends(get_engine)]) -> ...:
        ...
"""

from __future__ import annotations

from fastapi import Request

from wallet_ledger.engine.client import LedgerEngine  # noqa: TC001
from wallet_ledger.errors.definitions import ErrEngineNotReady


def get_engine(request: Request) -> LedgerEngine:
    """Retrieve the engine stored on ``app.state`` during lifespan startup.

    Raises:
        LedgerError: If the engine is not initialized.
    """
    engine: LedgerEngine | None = getattr(request.app.state, "engine", None)
    if engine is None or not engine.is_initialized:
        raise ErrEngineNotReady
    return engine
