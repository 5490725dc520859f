# import database
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update
from sqlalchemy.orm import selectinload
from typing import List
from datetime import datetime
from uuid import UUID
from uuid6 import uuid7

from goalie.models.dc_models import TxStateModel
from goalie.models.schemas import (
    Challenge,
    ChallengeChallenger,
    PayoutTransaction,
    User,
)

# Columns that may appear in a conditional challenge update.
MUTABLE_CHALLENGE_COLUMNS = frozenset(
    {
        "selected_grid",
        "correct_guess_proofs",
        "incorrect_guess_proofs",
        "guess_count",
        "settlement_claimed_at",
        "completed_at",
    }
)


class CreateData:
    """Insert helpers. They only add/flush; the caller owns commit/rollback."""

    @staticmethod
    async def add_user(wallet: str, name: str, session: AsyncSession) -> User:
        new_user = User(wallet=wallet, name=name, created_at=datetime.now())
        session.add(new_user)
        await session.flush()
        return new_user

    @staticmethod
    async def add_challenge(
        creator_wallet: str,
        target_grid_index: int,
        total_amount: float,
        creation_proof: str,
        session: AsyncSession,
    ) -> Challenge:
        """Add a fresh challenge with no guesses

        Args:
            creator_wallet (str): Wallet of the creator
            target_grid_index (int): Hidden target cell (1..9)
            total_amount (float): Stake each side commits
            creation_proof (str): Reference of the creator's funding transfer
        """
        new_challenge = Challenge(
            id=uuid7(),
            creator_wallet=creator_wallet,
            target_grid_index=target_grid_index,
            total_amount=total_amount,
            creation_proof=creation_proof,
            selected_grid=None,
            correct_guess_proofs=[],
            incorrect_guess_proofs=[],
            guess_count=0,
            settlement_claimed_at=None,
            completed_at=None,
            created_at=datetime.now(),
        )
        session.add(new_challenge)
        await session.flush()
        return new_challenge

    @staticmethod
    async def add_challenger(
        challenge_id: UUID,
        wallet: str,
        guessed_grid_index: int,
        guess_proof: str,
        correct: bool,
        session: AsyncSession,
    ) -> ChallengeChallenger:
        new_challenger = ChallengeChallenger(
            challenge_id=challenge_id,
            wallet=wallet,
            guessed_grid_index=guessed_grid_index,
            guess_proof=guess_proof,
            correct=correct,
            created_at=datetime.now(),
        )
        session.add(new_challenger)
        await session.flush()
        return new_challenger

    @staticmethod
    async def add_payout_transaction(
        challenge_id: UUID,
        from_wallet: str,
        to_wallet: str,
        amount: float,
        token: str,
        session: AsyncSession,
    ) -> PayoutTransaction:
        new_transaction = PayoutTransaction(
            challenge_id=challenge_id,
            from_wallet=from_wallet,
            to_wallet=to_wallet,
            amount=amount,
            token=token,
            tx_hash="",
            tx_state=TxStateModel.pending.value,
            created_at=datetime.now(),
        )
        session.add(new_transaction)
        await session.flush()
        return new_transaction


class ReadData:
    @staticmethod
    async def read_user(wallet: str, session: AsyncSession) -> User | None:
        result = await session.execute(select(User).where(User.wallet == wallet))
        return result.scalars().first()

    @staticmethod
    async def read_challenge(challenge_id: UUID, session: AsyncSession) -> Challenge | None:
        """Read a challenge together with its challengers

        Args:
            challenge_id (UUID): To identify the challenge

        Returns:
            Challenge | None: The challenge, or None when it does not exist
        """
        stmt = (
            select(Challenge)
            .where(Challenge.id == challenge_id)
            .options(selectinload(Challenge.challengers))
        )
        result = await session.execute(stmt)
        return result.scalars().first()

    @staticmethod
    async def read_challenges(
        session: AsyncSession,
        open_only: bool = False,
        creator_wallet: str | None = None,
        challenger_wallet: str | None = None,
    ) -> List[Challenge]:
        """Read challenges in creation order, optionally filtered

        Args:
            open_only (bool, optional): Only challenges that are not completed. Defaults to False.
            creator_wallet (str | None, optional): Only challenges created by this wallet.
            challenger_wallet (str | None, optional): Only challenges joined by this wallet.
        """
        stmt = select(Challenge).options(selectinload(Challenge.challengers))
        if open_only:
            stmt = stmt.where(Challenge.completed_at.is_(None))
        if creator_wallet is not None:
            stmt = stmt.where(Challenge.creator_wallet == creator_wallet)
        if challenger_wallet is not None:
            stmt = stmt.where(
                Challenge.challengers.any(ChallengeChallenger.wallet == challenger_wallet)
            )
        stmt = stmt.order_by(Challenge.created_at, Challenge.id)
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def read_payout_transactions(challenge_id: UUID, session: AsyncSession) -> List[PayoutTransaction]:
        stmt = (
            select(PayoutTransaction)
            .where(PayoutTransaction.challenge_id == challenge_id)
            .order_by(PayoutTransaction.tx_id)
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())


class UpdateData:
    @staticmethod
    async def update_challenge_conditional(
        challenge_id: UUID,
        expected: dict,
        new_fields: dict,
        session: AsyncSession,
    ) -> bool:
        """Single UPDATE ... WHERE that only applies while the row still holds the expected values

        Args:
            challenge_id (UUID): To identify the challenge
            expected (dict): Column name -> value the row must currently hold (None means IS NULL)
            new_fields (dict): Column name -> new value

        Returns:
            bool: True if the row was updated, False if another writer got there first
        """
        unknown = (set(expected) | set(new_fields)) - MUTABLE_CHALLENGE_COLUMNS
        if unknown:
            raise ValueError(f"Columns cannot be updated conditionally: {sorted(unknown)}")
        if not new_fields:
            raise ValueError("new_fields must not be empty")

        stmt = update(Challenge).where(Challenge.id == challenge_id)
        for name, value in expected.items():
            column = getattr(Challenge, name)
            stmt = stmt.where(column.is_(None) if value is None else column == value)
        stmt = stmt.values(**new_fields).execution_options(synchronize_session=False)
        result = await session.execute(stmt)
        return result.rowcount == 1

    @staticmethod
    async def update_payout_transaction(
        tx_id: int,
        session: AsyncSession,
        tx_state: str,
        tx_hash: str | None = None,
    ) -> bool:
        values = {"tx_state": tx_state}
        if tx_hash is not None:
            values["tx_hash"] = tx_hash
        if tx_state == TxStateModel.confirmed.value:
            values["confirmed_at"] = datetime.now()
        stmt = (
            update(PayoutTransaction)
            .where(PayoutTransaction.tx_id == tx_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        return result.rowcount == 1
