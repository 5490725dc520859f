import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from goalie.config import Config
from goalie.db import Session
from goalie.engine import SettlementEngine
from goalie.payout import LedgerPayoutService, load_transfer
from goalie.routers.challenge import challenge_router
from goalie.scanner import FullnessScanner
from goalie.services.challenge_db import ChallengeStore

logging.basicConfig(level=Config.LOG_LEVEL)

store = ChallengeStore(Session)


@asynccontextmanager
async def lifespan(app):
    """Create tables, wire the engine and start the fullness scanner.
    This function is called to start the server.
    """
    await store.create_tables()

    transfer = load_transfer(Config.PAYOUT_TRANSFER)
    payout_service = LedgerPayoutService(
        store,
        transfer,
        vault_wallet=Config.VAULT_WALLET,
        token=Config.PAYOUT_TOKEN,
    )
    engine = SettlementEngine(store, payout_service)
    app.state.engine = engine

    scanner = None
    if transfer is not None:
        scanner = FullnessScanner(engine)
        scanner.start()
    else:
        logging.warning("PAYOUT_TRANSFER is not set, fullness scanner is disabled")
    try:
        yield
    finally:
        if scanner is not None:
            scanner.stop()
        logging.info("Stop Server")


app = FastAPI(lifespan=lifespan)
app.include_router(challenge_router, prefix="/api")
