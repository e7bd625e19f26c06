"""
HOLLY Miner Configuration
Mining parameters, ledger endpoints and config file loading.
"""

from dataclasses import dataclass, asdict, fields, replace as dc_replace
from typing import Dict, Any, Optional
import os
import sys

# ============================================================================
# CORE SPECIFICATIONS
# ============================================================================

COIN_NAME = "HOLLY"
COIN_TICKER = "Holly$"

# Block reward paid to the miner when a block carries no pending transactions
BLOCK_REWARD = 512

# Reward transaction sender tag
REWARD_TRANSMITTER = "Coinbase"

# ============================================================================
# PROOF OF WORK PARAMETERS
# ============================================================================

# Number of leading hex zeros a block hash needs
DIFFICULTY = 4

# Parallel nonce search workers
PARALLEL_THREADS = 4

# Offset between the starting nonces of consecutive workers
NONCE_STRIDE = 1_000_000

# Per-worker nonce bound (None = search until a match is found)
MAX_NONCES_PER_WORKER = None

# Seconds a cancelled worker gets to exit before it is terminated
WORKER_JOIN_TIMEOUT = 5.0

# ============================================================================
# SCHEDULING & RETRY PARAMETERS
# ============================================================================

# Interval between mining rounds
POLL_INTERVAL_MS = 10_000

# Submission retries after the first attempt fails
MAX_RETRIES = 3

# Fixed delay between retry attempts (no backoff, no jitter)
RETRY_DELAY_MS = 12_000

# What a retry resends: "minimal" ({minerAddress} only) or "full" (whole block)
RETRY_PAYLOADS = ("minimal", "full")
RETRY_PAYLOAD = "minimal"

# ============================================================================
# LEDGER SERVICE
# ============================================================================

LEDGER_URL = "http://localhost:3000"
PENDING_TRANSACTIONS_PATH = "/pending-transactions"
MINE_PATH = "/mine"

# HTTP request timeout (seconds)
REQUEST_TIMEOUT = 30

LOG_LEVEL = "INFO"

CONFIG_FILE_NAME = "hollyminer.conf"


@dataclass(frozen=True)
class MinerConfig:
    """Immutable miner settings, passed explicitly to every component."""

    difficulty: int = DIFFICULTY
    parallel_threads: int = PARALLEL_THREADS
    poll_interval_ms: int = POLL_INTERVAL_MS
    max_retries: int = MAX_RETRIES
    retry_delay_ms: int = RETRY_DELAY_MS
    ledger_url: str = LEDGER_URL
    request_timeout: float = REQUEST_TIMEOUT
    nonce_stride: int = NONCE_STRIDE
    block_reward: int = BLOCK_REWARD
    retry_payload: str = RETRY_PAYLOAD
    max_nonces_per_worker: Optional[int] = MAX_NONCES_PER_WORKER
    start_method: Optional[str] = None
    log_level: str = LOG_LEVEL

    def __post_init__(self):
        if self.difficulty < 0:
            raise ValueError(f"difficulty must be >= 0 (got {self.difficulty})")
        if self.parallel_threads < 1:
            raise ValueError(f"parallelThreads must be >= 1 (got {self.parallel_threads})")
        if self.max_retries < 0:
            raise ValueError(f"maxRetries must be >= 0 (got {self.max_retries})")
        if self.retry_delay_ms < 0 or self.poll_interval_ms < 0:
            raise ValueError("delays must be >= 0")
        if self.nonce_stride < 1:
            raise ValueError(f"nonce stride must be >= 1 (got {self.nonce_stride})")
        if self.retry_payload not in RETRY_PAYLOADS:
            raise ValueError(
                f"retryPayload must be one of {', '.join(RETRY_PAYLOADS)} (got {self.retry_payload!r})"
            )
        if self.max_nonces_per_worker is not None and self.max_nonces_per_worker < 1:
            raise ValueError("maxNoncesPerWorker must be >= 1")

    @property
    def poll_interval(self) -> float:
        """Round interval in seconds."""
        return self.poll_interval_ms / 1000

    @property
    def retry_delay(self) -> float:
        """Retry delay in seconds."""
        return self.retry_delay_ms / 1000

    @property
    def target(self) -> str:
        return '0' * self.difficulty

    def replace(self, **overrides) -> 'MinerConfig':
        """Copy with some settings changed."""
        return dc_replace(self, **overrides)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# camelCase option names (config file) -> MinerConfig fields
OPTION_NAMES = {
    'difficulty': 'difficulty',
    'parallelThreads': 'parallel_threads',
    'pollIntervalMs': 'poll_interval_ms',
    'maxRetries': 'max_retries',
    'retryDelayMs': 'retry_delay_ms',
    'ledgerUrl': 'ledger_url',
    'requestTimeout': 'request_timeout',
    'nonceStride': 'nonce_stride',
    'blockReward': 'block_reward',
    'retryPayload': 'retry_payload',
    'maxNoncesPerWorker': 'max_nonces_per_worker',
    'startMethod': 'start_method',
    'logLevel': 'log_level',
}

_INT_FIELDS = {
    'difficulty', 'parallel_threads', 'poll_interval_ms', 'max_retries',
    'retry_delay_ms', 'nonce_stride', 'block_reward', 'max_nonces_per_worker',
}


def get_data_dir() -> str:
    """Get platform-specific data directory."""
    if sys.platform == 'win32':
        base = os.environ.get('APPDATA', os.path.expanduser('~'))
        return os.path.join(base, 'HollyMiner')
    elif sys.platform == 'darwin':
        return os.path.expanduser('~/Library/Application Support/HollyMiner')
    return os.path.expanduser('~/.hollyminer')


def get_config_file() -> str:
    """Get default config file path."""
    return os.path.join(get_data_dir(), CONFIG_FILE_NAME)


def _coerce(field_name: str, value: str) -> Any:
    """Convert a raw config file value to the field's type."""
    if field_name in _INT_FIELDS:
        if field_name == 'max_nonces_per_worker' and value.lower() in ('', 'none'):
            return None
        return int(value)
    if field_name == 'request_timeout':
        return float(value)
    if field_name == 'start_method' and value.lower() in ('', 'none', 'default'):
        return None
    return value


def read_config_file(config_file: str) -> Dict[str, Any]:
    """
    Read ``key=value`` settings from a config file.

    Args:
        config_file: Path to config file

    Returns:
        MinerConfig keyword arguments (unknown keys are ignored)
    """
    settings = {}
    try:
        with open(config_file, 'r') as f:
            for line in f:
                line = line.strip()
                if '=' in line and not line.startswith('#'):
                    key, value = line.split('=', 1)
                    field_name = OPTION_NAMES.get(key.strip())
                    if field_name:
                        settings[field_name] = _coerce(field_name, value.strip())
    except FileNotFoundError:
        pass
    return settings


def load_config(config_file: str = None, **overrides) -> MinerConfig:
    """
    Build the miner configuration.

    Defaults < config file < overrides. Overrides set to None are ignored so
    unset CLI flags fall through to the file.
    """
    if config_file is None:
        config_file = get_config_file()

    settings = read_config_file(config_file)
    known = {f.name for f in fields(MinerConfig)}
    for key, value in overrides.items():
        if key not in known:
            raise TypeError(f"Unknown config option: {key}")
        if value is not None:
            settings[key] = value

    return MinerConfig(**settings)
