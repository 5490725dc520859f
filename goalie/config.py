import os

from dotenv import load_dotenv

load_dotenv()


class Config:
    # Scanner period (seconds)
    SCAN_INTERVAL_SEC = int(os.environ.get('SCAN_INTERVAL_SEC', '60'))
    # 0 settles every full challenge found in a tick
    MAX_SETTLEMENTS_PER_TICK = int(os.environ.get('MAX_SETTLEMENTS_PER_TICK', '0'))
    # Number of challengers a challenge accepts before it is settled
    CHALLENGER_CAPACITY = int(os.environ.get('CHALLENGER_CAPACITY', '1'))
    PROTOCOL_FEE_BPS = int(os.environ.get('PROTOCOL_FEE_BPS', '0'))
    DEFAULT_USER_NAME = os.environ.get('DEFAULT_USER_NAME', 'User')
    # A settlement claim older than this may be taken over (0 never expires claims)
    SETTLEMENT_CLAIM_TIMEOUT_SEC = int(os.environ.get('SETTLEMENT_CLAIM_TIMEOUT_SEC', '300'))
    # Payouts
    VAULT_WALLET = os.environ.get('VAULT_WALLET', '')
    PAYOUT_TOKEN = os.environ.get('PAYOUT_TOKEN', 'SOL')
    # "package.module:function" resolving to an async transfer(from_wallet, to_wallet, amount) -> tx_hash
    PAYOUT_TRANSFER = os.environ.get('PAYOUT_TRANSFER', '')
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
