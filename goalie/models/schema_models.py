from pydantic import BaseModel
from typing import List, Optional
from uuid import UUID
from datetime import datetime


class UserSchema(BaseModel):
    wallet: str
    name: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ChallengerSchema(BaseModel):
    challenge_id: UUID
    wallet: str
    guessed_grid_index: int
    guess_proof: str
    correct: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ChallengeSchema(BaseModel):
    id: UUID
    creator_wallet: str
    target_grid_index: int
    total_amount: float
    creation_proof: str
    selected_grid: int | None
    correct_guess_proofs: List[str]
    incorrect_guess_proofs: List[str]
    guess_count: int
    settlement_claimed_at: datetime | None
    completed_at: datetime | None
    created_at: Optional[datetime] = None
    challengers: List[ChallengerSchema] = []

    class Config:
        from_attributes = True


class PayoutTransactionSchema(BaseModel):
    tx_id: int
    challenge_id: UUID
    from_wallet: str
    to_wallet: str
    amount: float
    token: str
    tx_hash: str
    tx_state: str
    created_at: Optional[datetime] = None
    confirmed_at: datetime | None = None

    class Config:
        from_attributes = True


class PayoutRecipientSchema(BaseModel):
    wallet: str
    amount: float


class GuessResultSchema(BaseModel):
    challenge: ChallengeSchema
    correct: bool


class SettlementOutcomeSchema(BaseModel):
    challenge_id: UUID
    winner: str
    recipients: List[PayoutRecipientSchema]
    completed_at: datetime
