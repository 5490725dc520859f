from pydantic import BaseModel, Field
from enum import Enum
from uuid import UUID
from typing import List, Optional
from datetime import datetime


class TxStateModel(str, Enum):
    pending = "Pending"
    confirmed = "Confirmed"
    failed = "Failed"


class CreateChallengeModel(BaseModel):
    account: str = Field(min_length=1)
    signature: str = Field(min_length=1)  # proof of the creator's funding transfer
    vert_set: str
    hor_set: str
    amount: float


class SubmitGuessModel(BaseModel):
    account: str = Field(min_length=1)
    signature: str = Field(min_length=1)  # proof of the challenger's matching transfer
    vert_set: str
    hor_set: str


class CreatedChallengeModel(BaseModel):
    challenge_id: UUID


class GuessResponseModel(BaseModel):
    challenge_id: UUID
    correct: bool
    selected_grid: int
    message: str


class ChallengePublicModel(BaseModel):
    """Challenge as shown to clients. The target cell stays hidden until settlement."""

    challenge_id: UUID
    creator_wallet: str
    total_amount: float
    is_full: bool
    selected_grid: int | None
    target_grid_index: int | None
    challengers: List[str]
    winners: List[str]
    created_at: Optional[datetime] = None
    completed_at: datetime | None


class UserChallengesModel(BaseModel):
    wallet: str
    created: List[ChallengePublicModel]
    joined: List[ChallengePublicModel]
