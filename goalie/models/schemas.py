from sqlalchemy import ForeignKey
from sqlalchemy.orm import DeclarativeBase, relationship
from sqlalchemy.schema import Column
from sqlalchemy.types import JSON, Boolean, DateTime, Float, Integer, String, Uuid
from uuid6 import uuid7
from datetime import datetime


class Base(DeclarativeBase):
    pass


class User(Base):
    __tablename__ = "user_account"
    wallet = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    created_at = Column(DateTime, default=datetime.now)

    created_challenges = relationship(
        "Challenge",
        back_populates="creator",
    )


class Challenge(Base):
    __tablename__ = "challenge"
    id = Column(Uuid, primary_key=True, default=uuid7)
    creator_wallet = Column(String, ForeignKey("user_account.wallet"), nullable=False, index=True)
    target_grid_index = Column(Integer, nullable=False)
    total_amount = Column(Float, nullable=False)
    creation_proof = Column(String, nullable=False)
    selected_grid = Column(Integer, nullable=True)
    correct_guess_proofs = Column(JSON, nullable=False, default=list)
    incorrect_guess_proofs = Column(JSON, nullable=False, default=list)
    # Version for guess admission, bumped by every accepted guess
    guess_count = Column(Integer, nullable=False, default=0)
    settlement_claimed_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.now)

    creator = relationship(
        "User",
        back_populates="created_challenges",
    )
    challengers = relationship(
        "ChallengeChallenger",
        back_populates="challenge",
        cascade="all, delete",
        order_by="ChallengeChallenger.created_at",
    )
    payout_transactions = relationship(
        "PayoutTransaction",
        back_populates="challenge",
        cascade="all, delete",
    )


class ChallengeChallenger(Base):
    __tablename__ = "challenge_challenger"
    challenge_id = Column(Uuid, ForeignKey("challenge.id"), primary_key=True)
    wallet = Column(String, ForeignKey("user_account.wallet"), primary_key=True)
    guessed_grid_index = Column(Integer, nullable=False)
    guess_proof = Column(String, nullable=False)
    correct = Column(Boolean, nullable=False)
    created_at = Column(DateTime, default=datetime.now)

    challenge = relationship(
        "Challenge",
        back_populates="challengers",
    )


class PayoutTransaction(Base):
    __tablename__ = "payout_transaction"
    tx_id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    challenge_id = Column(Uuid, ForeignKey("challenge.id"), nullable=False, index=True)
    from_wallet = Column(String, nullable=False)
    to_wallet = Column(String, nullable=False)
    amount = Column(Float, nullable=False)
    token = Column(String, nullable=False, default="SOL")
    tx_hash = Column(String, nullable=False, default="")
    tx_state = Column(String, nullable=False, default="Pending")
    created_at = Column(DateTime, default=datetime.now)
    confirmed_at = Column(DateTime, nullable=True)

    challenge = relationship(
        "Challenge",
        back_populates="payout_transactions",
    )
