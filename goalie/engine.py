"""Challenge lifecycle: creation, guess admission and settlement.

Guarded transitions (the first guess, the settlement claim and completion)
only happen through ChallengeStore.update_challenge_conditional, so two
concurrent callers can never both win the same transition.
"""

import logging
import math
from datetime import datetime, timedelta
from typing import Callable, List
from uuid import UUID

from goalie.config import Config
from goalie.domain.grid import validate_grid_index
from goalie.domain import settlement_rules
from goalie.errors import (
    AlreadySettled,
    ChallengeCompleted,
    ChallengeFull,
    ChallengeNotFound,
    InvalidAmount,
    InvalidInput,
    NotFull,
    PayoutFailed,
    SettlementInProgress,
    StoreError,
)
from goalie.models.dc_models import TxStateModel
from goalie.models.schema_models import (
    ChallengeSchema,
    GuessResultSchema,
    PayoutRecipientSchema,
    SettlementOutcomeSchema,
)
from goalie.payout import PayoutService
from goalie.services.challenge_db import ChallengeStore


def _require(value, name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidInput(f"{name} is required")
    return value


def _validate_amount(total_amount) -> float:
    if isinstance(total_amount, bool) or not isinstance(total_amount, (int, float)):
        raise InvalidAmount(f"amount must be a number, got {total_amount!r}")
    if not math.isfinite(total_amount) or total_amount <= 0:
        raise InvalidAmount(f"amount must be greater than 0, got {total_amount}")
    return float(total_amount)


class SettlementEngine:
    def __init__(
        self,
        store: ChallengeStore,
        payout_service: PayoutService,
        capacity: int = Config.CHALLENGER_CAPACITY,
        protocol_fee_bps: int = Config.PROTOCOL_FEE_BPS,
        default_user_name: str = Config.DEFAULT_USER_NAME,
        claim_timeout_sec: int = Config.SETTLEMENT_CLAIM_TIMEOUT_SEC,
        clock: Callable[[], datetime] = datetime.now,
    ):
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        # Fails fast on an out of range fee
        settlement_rules.protocol_fee(0, protocol_fee_bps)
        self.store = store
        self.payout_service = payout_service
        self.capacity = capacity
        self.protocol_fee_bps = protocol_fee_bps
        self.default_user_name = default_user_name
        self.claim_timeout_sec = claim_timeout_sec
        self.clock = clock

    async def create_challenge(
        self,
        creator_wallet: str,
        target_grid_index: int,
        total_amount: float,
        creation_proof: str,
    ) -> UUID:
        """Create a new challenge

        Args:
            creator_wallet (str): Wallet of the creator (created as a user on first contact)
            target_grid_index (int): Hidden target cell, 1..9
            total_amount (float): Stake each side commits, > 0
            creation_proof (str): Reference of the creator's funding transfer

        Raises:
            InvalidGridIndex: target_grid_index is out of range
            InvalidAmount: total_amount is not positive

        Returns:
            UUID: Id of the new challenge
        """
        validate_grid_index(target_grid_index)
        amount = _validate_amount(total_amount)
        _require(creator_wallet, "creator_wallet")
        _require(creation_proof, "creation_proof")

        await self.store.ensure_user(creator_wallet, self.default_user_name)
        challenge_id = await self.store.create_challenge(
            {
                "creator_wallet": creator_wallet,
                "target_grid_index": target_grid_index,
                "total_amount": amount,
                "creation_proof": creation_proof,
            }
        )
        logging.info(f"Created challenge {challenge_id} by {creator_wallet} amount={amount}")
        return challenge_id

    def is_full(self, challenge: ChallengeSchema) -> bool:
        return settlement_rules.is_full(
            len(challenge.correct_guess_proofs),
            len(challenge.incorrect_guess_proofs),
            self.capacity,
        )

    async def get_challenge(self, challenge_id: UUID) -> ChallengeSchema:
        challenge = await self.store.get_challenge(challenge_id)
        if challenge is None:
            raise ChallengeNotFound(f"Challenge {challenge_id} not found")
        return challenge

    async def list_open_challenges(self) -> List[ChallengeSchema]:
        return await self.store.list_challenges(open_only=True)

    async def list_challenges_by_creator(self, wallet: str) -> List[ChallengeSchema]:
        return await self.store.list_challenges(creator_wallet=wallet)

    async def list_challenges_by_challenger(self, wallet: str) -> List[ChallengeSchema]:
        return await self.store.list_challenges(challenger_wallet=wallet)

    async def submit_guess(
        self,
        challenge_id: UUID,
        challenger_wallet: str,
        guessed_grid_index: int,
        guess_proof: str,
    ) -> GuessResultSchema:
        """Record a challenger's guess

        Args:
            challenge_id (UUID): To identify the challenge
            challenger_wallet (str): Wallet of the challenger
            guessed_grid_index (int): Guessed cell, 1..9
            guess_proof (str): Reference of the challenger's matching transfer

        Raises:
            ChallengeNotFound: No such challenge
            ChallengeFull: Capacity reached, including losing a concurrent race
            ChallengeCompleted: The challenge is already settled

        Returns:
            GuessResultSchema: Updated challenge and whether the guess hit the target
        """
        validate_grid_index(guessed_grid_index)
        _require(challenger_wallet, "challenger_wallet")
        _require(guess_proof, "guess_proof")

        challenge = await self.get_challenge(challenge_id)
        if self.is_full(challenge):
            raise ChallengeFull(f"Challenge {challenge_id} is full")
        if challenge.completed_at is not None:
            raise ChallengeCompleted(f"Challenge {challenge_id} is already completed")
        if challenger_wallet == challenge.creator_wallet:
            raise InvalidInput("The creator cannot join their own challenge")
        if any(c.wallet == challenger_wallet for c in challenge.challengers):
            raise InvalidInput(f"{challenger_wallet} has already joined challenge {challenge_id}")

        await self.store.ensure_user(challenger_wallet, self.default_user_name)

        correct = guessed_grid_index == challenge.target_grid_index
        new_fields = {"guess_count": challenge.guess_count + 1}
        if correct:
            new_fields["correct_guess_proofs"] = [*challenge.correct_guess_proofs, guess_proof]
        else:
            new_fields["incorrect_guess_proofs"] = [*challenge.incorrect_guess_proofs, guess_proof]
        if challenge.selected_grid is None:
            new_fields["selected_grid"] = guessed_grid_index

        updated = await self.store.update_challenge_conditional(
            challenge_id,
            expected={
                "guess_count": challenge.guess_count,
                "selected_grid": challenge.selected_grid,
                "completed_at": None,
            },
            new_fields=new_fields,
            challenger={
                "wallet": challenger_wallet,
                "guessed_grid_index": guessed_grid_index,
                "guess_proof": guess_proof,
                "correct": correct,
            },
        )
        if not updated:
            current = await self.get_challenge(challenge_id)
            if current.completed_at is not None:
                raise ChallengeCompleted(f"Challenge {challenge_id} is already completed")
            logging.info(f"Guess by {challenger_wallet} lost the race on challenge {challenge_id}")
            raise ChallengeFull(f"Challenge {challenge_id} is full")

        logging.info(
            f"Accepted guess on challenge {challenge_id} by {challenger_wallet} "
            f"grid={guessed_grid_index} correct={correct}"
        )
        return GuessResultSchema(challenge=await self.get_challenge(challenge_id), correct=correct)

    async def try_settle(self, challenge_id: UUID) -> SettlementOutcomeSchema:
        """Pay out a full challenge exactly once and mark it completed

        Raises:
            ChallengeNotFound: No such challenge
            AlreadySettled: completed_at is already set
            NotFull: The challenge has not reached capacity
            SettlementInProgress: Another caller holds a settlement claim younger than claim_timeout_sec
            PayoutFailed: The payout service failed, the challenge stays open for a retry

        Returns:
            SettlementOutcomeSchema: Winner side, recipients and completion time
        """
        challenge = await self.get_challenge(challenge_id)
        if challenge.completed_at is not None:
            raise AlreadySettled(f"Challenge {challenge_id} is already settled")
        if not self.is_full(challenge):
            raise NotFull(f"Challenge {challenge_id} is not full")

        claimed_at = self.clock()
        claimed = await self.store.update_challenge_conditional(
            challenge_id,
            expected={"settlement_claimed_at": None, "completed_at": None},
            new_fields={"settlement_claimed_at": claimed_at},
        )
        if not claimed:
            current = await self.get_challenge(challenge_id)
            if current.completed_at is not None:
                raise AlreadySettled(f"Challenge {challenge_id} is already settled")
            if not await self._take_over_stale_claim(current, claimed_at):
                raise SettlementInProgress(f"Challenge {challenge_id} is being settled")
        logging.info(f"Claimed settlement of challenge {challenge_id}")

        winner, shares = settlement_rules.determine_recipients(
            challenge.creator_wallet,
            challenge.total_amount,
            [(c.wallet, c.correct) for c in challenge.challengers],
            self.protocol_fee_bps,
        )
        recipients = [PayoutRecipientSchema(wallet=wallet, amount=amount) for wallet, amount in shares]

        try:
            paid = await self.payout_service.pay(challenge_id, recipients)
        except Exception as e:
            logging.error(f"Payout for challenge {challenge_id} raised: {e}")
            await self._release_claim(challenge_id, claimed_at)
            raise PayoutFailed(f"Payout for challenge {challenge_id} failed") from e
        if not paid:
            logging.error(f"Payout for challenge {challenge_id} reported failure")
            await self._release_claim(challenge_id, claimed_at)
            raise PayoutFailed(f"Payout for challenge {challenge_id} failed")

        # The claim is kept from here on, so a failure below can never lead to a second payout.
        completed_at = self.clock()
        marked = await self.store.update_challenge_conditional(
            challenge_id,
            expected={"settlement_claimed_at": claimed_at, "completed_at": None},
            new_fields={"completed_at": completed_at},
        )
        if not marked:
            logging.error(f"Challenge {challenge_id} was paid but could not be marked completed")
            raise StoreError(f"Challenge {challenge_id} was paid but could not be marked completed")

        logging.info(
            f"Settled challenge {challenge_id}: winner={winner} "
            f"recipients={[(r.wallet, r.amount) for r in recipients]}"
        )
        return SettlementOutcomeSchema(
            challenge_id=challenge_id,
            winner=winner,
            recipients=recipients,
            completed_at=completed_at,
        )

    async def _take_over_stale_claim(self, challenge: ChallengeSchema, claimed_at: datetime) -> bool:
        """Move a claim older than claim_timeout_sec to this attempt.

        Refused while a payout transaction is still Pending, since that transfer may
        already have moved funds.
        """
        held_since = challenge.settlement_claimed_at
        if not self.claim_timeout_sec or held_since is None:
            return False
        if claimed_at - held_since < timedelta(seconds=self.claim_timeout_sec):
            return False

        transactions = await self.store.list_payout_transactions(challenge.id)
        if any(tx.tx_state == TxStateModel.pending.value for tx in transactions):
            logging.error(
                f"Stale settlement claim on challenge {challenge.id} has a pending payout, "
                f"needs reconciliation"
            )
            return False

        taken = await self.store.update_challenge_conditional(
            challenge.id,
            expected={"settlement_claimed_at": held_since, "completed_at": None},
            new_fields={"settlement_claimed_at": claimed_at},
        )
        if taken:
            logging.warning(f"Took over settlement claim on challenge {challenge.id} held since {held_since}")
        return taken

    async def _release_claim(self, challenge_id: UUID, claimed_at: datetime) -> None:
        try:
            released = await self.store.update_challenge_conditional(
                challenge_id,
                expected={"settlement_claimed_at": claimed_at, "completed_at": None},
                new_fields={"settlement_claimed_at": None},
            )
        except StoreError as e:
            # The claim expires after claim_timeout_sec instead
            logging.error(f"Could not release settlement claim on challenge {challenge_id}: {e}")
            return
        if not released:
            logging.warning(f"Settlement claim on challenge {challenge_id} was already released")
