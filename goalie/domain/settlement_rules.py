"""Fullness and payout rules that are independent from the database and payouts.

Rule of thumb:
- OK: counting proofs, splitting the pot, fee math.
- Not OK: touching DB sessions, calling the payout service, datetime.now().
"""

from typing import List, Sequence, Tuple

DEFAULT_CAPACITY = 1
BPS_DENOMINATOR = 10_000
# Amounts are rounded to lamport precision.
AMOUNT_DECIMALS = 9

WINNER_CHALLENGER = "challenger"
WINNER_CREATOR = "creator"


def is_full(correct_count: int, incorrect_count: int, capacity: int = DEFAULT_CAPACITY) -> bool:
    """Return True when the challenge has received all the guesses it accepts."""
    if capacity < 1:
        raise ValueError("capacity must be >= 1")
    total = correct_count + incorrect_count
    return total > 0 and total >= capacity


def pot_size(total_amount: float, challenger_count: int) -> float:
    """Each side commits total_amount, so the pot is the creator's stake plus one per challenger."""
    return round(total_amount * (1 + challenger_count), AMOUNT_DECIMALS)


def protocol_fee(pot: float, fee_bps: int) -> float:
    if fee_bps < 0 or fee_bps > BPS_DENOMINATOR:
        raise ValueError("fee_bps must be between 0 and 10000")
    return round(pot * fee_bps / BPS_DENOMINATOR, AMOUNT_DECIMALS)


def determine_recipients(
    creator_wallet: str,
    total_amount: float,
    challengers: Sequence[Tuple[str, bool]],
    fee_bps: int = 0,
) -> Tuple[str, List[Tuple[str, float]]]:
    """Decide who gets paid and how much.

    Args:
        creator_wallet (str): Wallet of the challenge creator
        total_amount (float): Stake committed by each side
        challengers (Sequence[Tuple[str, bool]]): (wallet, guessed correctly) per challenger
        fee_bps (int, optional): Protocol fee in basis points. Defaults to 0.

    Returns:
        Tuple[str, List[Tuple[str, float]]]: Winning side and (wallet, amount) per recipient
    """
    pot = pot_size(total_amount, len(challengers))
    payable = round(pot - protocol_fee(pot, fee_bps), AMOUNT_DECIMALS)

    winners = [wallet for wallet, correct in challengers if correct]
    if not winners:
        return WINNER_CREATOR, [(creator_wallet, payable)]

    share = round(payable / len(winners), AMOUNT_DECIMALS)
    return WINNER_CHALLENGER, [(wallet, share) for wallet in winners]
