# state.py
# Persistent singletons of the pool and their byte layouts.
#
# TreeState    : slot derive_address("merkle_tree")
# GlobalPolicy : slot derive_address("global_config")
#
# Both are packed little-endian with struct, fixed size, so a slot always
# holds the full array capacity even when height / history size are smaller.

import struct

from field_codec import ZERO32
from storage import derive_address

# ==========================================================
# Limits and defaults
# ==========================================================
MAX_TREE_HEIGHT = 32
MAX_ROOT_HISTORY_SIZE = 100

DEFAULT_TREE_HEIGHT = 26
DEFAULT_ROOT_HISTORY_SIZE = 100
DEFAULT_MAX_DEPOSIT_AMOUNT = 1_000_000_000_000

DEFAULT_DEPOSIT_FEE_RATE = 0
DEFAULT_WITHDRAWAL_FEE_RATE = 25
DEFAULT_FEE_ERROR_MARGIN = 500

MAX_BASIS_POINTS = 10000

TREE_STATE_SEED = "merkle_tree"
GLOBAL_CONFIG_SEED = "global_config"

_TREE_HEADER = struct.Struct("<32sQQQHH")
_POLICY_LAYOUT = struct.Struct("<32sHHH")

TREE_STATE_SIZE = _TREE_HEADER.size + 32 * MAX_TREE_HEIGHT + 32 * MAX_ROOT_HISTORY_SIZE
GLOBAL_POLICY_SIZE = _POLICY_LAYOUT.size


def tree_state_address():
    return derive_address(TREE_STATE_SEED)


def global_config_address():
    return derive_address(GLOBAL_CONFIG_SEED)


class TreeState:
    """
    Header fields plus the two fixed arrays:
      subtrees[MAX_TREE_HEIGHT]          filled subtree per level
      root_history[MAX_ROOT_HISTORY_SIZE] ring buffer of recent roots
    """

    def __init__(self, authority=ZERO32, next_index=0, root_index=0,
                 max_deposit_amount=DEFAULT_MAX_DEPOSIT_AMOUNT,
                 height=DEFAULT_TREE_HEIGHT,
                 root_history_size=DEFAULT_ROOT_HISTORY_SIZE,
                 subtrees=None, root_history=None):
        self.authority = bytes(authority)
        self.next_index = next_index
        self.root_index = root_index
        self.max_deposit_amount = max_deposit_amount
        self.height = height
        self.root_history_size = root_history_size
        if subtrees is None:
            subtrees = [ZERO32] * MAX_TREE_HEIGHT
        if root_history is None:
            root_history = [ZERO32] * MAX_ROOT_HISTORY_SIZE
        self.subtrees = list(subtrees)
        self.root_history = list(root_history)

    def to_bytes(self):
        out = bytearray(_TREE_HEADER.pack(
            self.authority,
            self.next_index,
            self.root_index,
            self.max_deposit_amount,
            self.height,
            self.root_history_size,
        ))
        for node in self.subtrees:
            out.extend(node)
        for root in self.root_history:
            out.extend(root)
        return bytes(out)

    @classmethod
    def from_bytes(cls, data):
        if len(data) != TREE_STATE_SIZE:
            raise ValueError("tree state must be %d bytes, got %d" % (TREE_STATE_SIZE, len(data)))
        authority, next_index, root_index, max_deposit, height, history = \
            _TREE_HEADER.unpack_from(data, 0)

        off = _TREE_HEADER.size
        subtrees = []
        i = 0
        while i < MAX_TREE_HEIGHT:
            subtrees.append(bytes(data[off:off + 32]))
            off += 32
            i += 1

        roots = []
        i = 0
        while i < MAX_ROOT_HISTORY_SIZE:
            roots.append(bytes(data[off:off + 32]))
            off += 32
            i += 1

        return cls(authority, next_index, root_index, max_deposit, height, history,
                   subtrees, roots)

    def current_root(self):
        return self.root_history[self.root_index]


class GlobalPolicy:
    """Fee rates and the fee error margin, all in basis points."""

    def __init__(self, authority=ZERO32,
                 deposit_fee_rate=DEFAULT_DEPOSIT_FEE_RATE,
                 withdrawal_fee_rate=DEFAULT_WITHDRAWAL_FEE_RATE,
                 fee_error_margin=DEFAULT_FEE_ERROR_MARGIN):
        self.authority = bytes(authority)
        self.deposit_fee_rate = deposit_fee_rate
        self.withdrawal_fee_rate = withdrawal_fee_rate
        self.fee_error_margin = fee_error_margin

    def to_bytes(self):
        return _POLICY_LAYOUT.pack(
            self.authority,
            self.deposit_fee_rate,
            self.withdrawal_fee_rate,
            self.fee_error_margin,
        )

    @classmethod
    def from_bytes(cls, data):
        if len(data) != GLOBAL_POLICY_SIZE:
            raise ValueError("global policy must be %d bytes, got %d" % (GLOBAL_POLICY_SIZE, len(data)))
        return cls(*_POLICY_LAYOUT.unpack(data))

    def to_dict(self):
        return {
            "authority": self.authority.hex(),
            "deposit_fee_rate": self.deposit_fee_rate,
            "withdrawal_fee_rate": self.withdrawal_fee_rate,
            "fee_error_margin": self.fee_error_margin,
        }


def load_tree_state(txn):
    data = txn.read(tree_state_address())
    if data is None:
        return None
    return TreeState.from_bytes(data)


def store_tree_state(txn, state):
    txn.write(tree_state_address(), state.to_bytes())


def load_global_policy(txn):
    data = txn.read(global_config_address())
    if data is None:
        return None
    return GlobalPolicy.from_bytes(data)


def store_global_policy(txn, policy):
    txn.write(global_config_address(), policy.to_bytes())
