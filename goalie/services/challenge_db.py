"""DB service layer for challenge-related use cases.

- The engine should not touch DB sessions directly; it calls this module.
- This layer owns session/transaction boundaries.
- CRUD helpers never commit; every public method here commits or rolls back.
- SQLAlchemy failures surface as StoreError.
"""

import logging
from contextlib import asynccontextmanager
from typing import List
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from goalie.crud import CreateData, ReadData, UpdateData
from goalie.errors import StoreError
from goalie.models.dc_models import TxStateModel
from goalie.models.schema_models import (
    ChallengeSchema,
    PayoutTransactionSchema,
    UserSchema,
)
from goalie.models.schemas import Base


class ChallengeStore:
    def __init__(self, session_factory: async_sessionmaker):
        self._session_factory = session_factory

    @asynccontextmanager
    async def _session(self, action: str):
        async with self._session_factory() as session:
            try:
                yield session
            except SQLAlchemyError as e:
                logging.error(f"Failed to {action}: {e}")
                await session.rollback()
                raise StoreError(f"Failed to {action}") from e

    async def create_tables(self) -> None:
        """Create tables if not exists"""
        async with self._session("create tables") as session:
            connection = await session.connection()
            await connection.run_sync(Base.metadata.create_all)
            await session.commit()

    async def ensure_user(self, wallet: str, default_name: str) -> UserSchema:
        """Return the user for wallet, creating it with default_name on first contact.

        A concurrent insert of the same wallet is treated as success.
        """
        async with self._session("ensure user") as session:
            user = await ReadData.read_user(wallet, session)
            if user is not None:
                return UserSchema.model_validate(user)
            try:
                user = await CreateData.add_user(wallet, default_name, session)
                await session.commit()
                logging.info(f"Created user {wallet}")
                return UserSchema.model_validate(user)
            except IntegrityError:
                await session.rollback()
                logging.info(f"User {wallet} was created concurrently")

        async with self._session("read user") as session:
            user = await ReadData.read_user(wallet, session)
            if user is None:
                raise StoreError(f"User {wallet} vanished after concurrent create")
            return UserSchema.model_validate(user)

    async def read_user(self, wallet: str) -> UserSchema | None:
        async with self._session("read user") as session:
            user = await ReadData.read_user(wallet, session)
            return None if user is None else UserSchema.model_validate(user)

    async def create_challenge(self, fields: dict) -> UUID:
        async with self._session("create challenge") as session:
            challenge = await CreateData.add_challenge(
                creator_wallet=fields["creator_wallet"],
                target_grid_index=fields["target_grid_index"],
                total_amount=fields["total_amount"],
                creation_proof=fields["creation_proof"],
                session=session,
            )
            challenge_id = challenge.id
            await session.commit()
            return challenge_id

    async def get_challenge(self, challenge_id: UUID) -> ChallengeSchema | None:
        async with self._session("read challenge") as session:
            challenge = await ReadData.read_challenge(challenge_id, session)
            if challenge is None:
                return None
            return ChallengeSchema.model_validate(challenge)

    async def list_challenges(
        self,
        open_only: bool = False,
        creator_wallet: str | None = None,
        challenger_wallet: str | None = None,
    ) -> List[ChallengeSchema]:
        async with self._session("list challenges") as session:
            challenges = await ReadData.read_challenges(
                session,
                open_only=open_only,
                creator_wallet=creator_wallet,
                challenger_wallet=challenger_wallet,
            )
            return [ChallengeSchema.model_validate(challenge) for challenge in challenges]

    async def update_challenge_conditional(
        self,
        challenge_id: UUID,
        expected: dict,
        new_fields: dict,
        challenger: dict | None = None,
    ) -> bool:
        """Apply new_fields only if the row still holds expected, in one transaction.

        Args:
            challenge_id (UUID): To identify the challenge
            expected (dict): Values the guarded columns must currently hold
            new_fields (dict): Values to write
            challenger (dict | None, optional): Challenger relation row (wallet, guessed_grid_index,
                guess_proof, correct) committed together with the update.

        Returns:
            bool: True on success, False on conflict (nothing is written)
        """
        async with self._session("update challenge") as session:
            updated = await UpdateData.update_challenge_conditional(
                challenge_id, expected, new_fields, session
            )
            if not updated:
                await session.rollback()
                return False
            if challenger is not None:
                await CreateData.add_challenger(challenge_id=challenge_id, session=session, **challenger)
            await session.commit()
            return True

    async def create_payout_transaction(
        self,
        challenge_id: UUID,
        from_wallet: str,
        to_wallet: str,
        amount: float,
        token: str,
    ) -> PayoutTransactionSchema:
        async with self._session("create payout transaction") as session:
            transaction = await CreateData.add_payout_transaction(
                challenge_id, from_wallet, to_wallet, amount, token, session
            )
            await session.commit()
            return PayoutTransactionSchema.model_validate(transaction)

    async def confirm_payout_transaction(self, tx_id: int, tx_hash: str) -> bool:
        async with self._session("confirm payout transaction") as session:
            updated = await UpdateData.update_payout_transaction(
                tx_id, session, tx_state=TxStateModel.confirmed.value, tx_hash=tx_hash
            )
            await session.commit()
            return updated

    async def fail_payout_transaction(self, tx_id: int) -> bool:
        async with self._session("fail payout transaction") as session:
            updated = await UpdateData.update_payout_transaction(tx_id, session, tx_state=TxStateModel.failed.value)
            await session.commit()
            return updated

    async def list_payout_transactions(self, challenge_id: UUID) -> List[PayoutTransactionSchema]:
        async with self._session("list payout transactions") as session:
            transactions = await ReadData.read_payout_transactions(challenge_id, session)
            return [PayoutTransactionSchema.model_validate(tx) for tx in transactions]
