# merkle_tree.py
#
# IncrementalMerkleTree : the on-pool tree. Only filled subtrees and a ring
#                         buffer of recent roots are kept (inside TreeState).
# MerkleTree            : full client-side mirror with authentication paths.
#
# Both use Poseidon(left, right) and the same per-level zero hashes, so for
# the same leaves they produce the same root.

from errors import ErrorCode, PoolError
from field_codec import FR_MODULUS, ZERO32, is_canonical_fr
from state import MAX_ROOT_HISTORY_SIZE, MAX_TREE_HEIGHT, TreeState
from tools import short_hex
from wrappers.poseidon_hash_wrapper import poseidon_permutation_hash

_ZEROS_CACHE = [ZERO32]


def hash_pair(left, right):
    """Poseidon of two 32-byte big-endian nodes, returned as 32 bytes."""
    l_int = int.from_bytes(left, "big")
    r_int = int.from_bytes(right, "big")
    if l_int >= FR_MODULUS or r_int >= FR_MODULUS:
        raise ValueError("merkle node is not a canonical field element")
    return poseidon_permutation_hash([l_int, r_int]).to_bytes(32, "big")


def zero_hashes(height):
    """
    zeros[0] is the empty leaf, zeros[i + 1] = H(zeros[i], zeros[i]).
    Returns height + 1 entries; zeros[height] is the empty-tree root.
    """
    while len(_ZEROS_CACHE) <= height:
        prev = _ZEROS_CACHE[-1]
        _ZEROS_CACHE.append(hash_pair(prev, prev))
    return _ZEROS_CACHE[:height + 1]


class IncrementalMerkleTree:
    def __init__(self, state):
        self.state = state

    @classmethod
    def initialize(cls, height, root_history_size, authority=ZERO32, max_deposit_amount=0):
        if height <= 0 or height > MAX_TREE_HEIGHT:
            raise PoolError(ErrorCode.INVALID_TREE_PARAMETERS, "height=%d" % height)
        if root_history_size <= 0 or root_history_size > MAX_ROOT_HISTORY_SIZE:
            raise PoolError(ErrorCode.INVALID_TREE_PARAMETERS,
                            "root_history_size=%d" % root_history_size)

        zeros = zero_hashes(height)
        state = TreeState(
            authority=authority,
            next_index=0,
            root_index=0,
            max_deposit_amount=max_deposit_amount,
            height=height,
            root_history_size=root_history_size,
        )
        i = 0
        while i < height:
            state.subtrees[i] = zeros[i]
            i += 1
        state.root_history[0] = zeros[height]
        return cls(state)

    def capacity(self):
        return 1 << self.state.height

    def root(self):
        return self.state.current_root()

    def append(self, leaf):
        """
        Insert leaf at next_index and record the new root.
        Returns the index the leaf was stored at.
        """
        st = self.state
        if st.next_index >= self.capacity():
            raise PoolError(ErrorCode.MERKLE_TREE_FULL,
                            "next_index=%d height=%d" % (st.next_index, st.height))
        if not is_canonical_fr(leaf):
            raise PoolError(ErrorCode.INVALID_COMMITMENT, short_hex(bytes(leaf)))

        zeros = zero_hashes(st.height)
        index = st.next_index
        current_index = index
        current = bytes(leaf)

        level = 0
        while level < st.height:
            if current_index % 2 == 0:
                left = current
                right = zeros[level]
                st.subtrees[level] = current
            else:
                left = st.subtrees[level]
                right = current
            current = hash_pair(left, right)
            current_index //= 2
            level += 1

        st.root_index = (st.root_index + 1) % st.root_history_size
        st.root_history[st.root_index] = current
        st.next_index = index + 1
        return index

    def is_known_root(self, root):
        if root is None or len(root) != 32:
            return False
        if bytes(root) == ZERO32:
            return False

        st = self.state
        size = st.root_history_size
        i = st.root_index
        while True:
            if st.root_history[i] == root:
                return True
            if i == 0:
                i = size
            i -= 1
            if i == st.root_index:
                break
        return False


def _h2(left_hex, right_hex):
    return hash_pair(bytes.fromhex(left_hex), bytes.fromhex(right_hex)).hex()


class MerkleTree:
    """
    Fixed-height mirror of the pool tree, kept by clients from the
    commitment events. Empty positions are the per-level zero hashes.
    """

    def __init__(self, height):
        if height <= 0 or height > MAX_TREE_HEIGHT:
            raise ValueError("height must be between 1 and %d" % MAX_TREE_HEIGHT)
        self.height = height
        self.zeros = [z.hex() for z in zero_hashes(height)]
        self.leaves = []
        self.levels = [[] for _ in range(height + 1)]

    def append(self, leaf_hex):
        if len(self.leaves) >= (1 << self.height):
            raise ValueError("mirror tree is full")
        leaf_hex = leaf_hex.strip().lower()
        if not is_canonical_fr(bytes.fromhex(leaf_hex)):
            raise ValueError("leaf is not a canonical field element")
        self.leaves.append(leaf_hex)
        self._update_path(len(self.leaves) - 1)
        return len(self.leaves) - 1

    def _update_path(self, index):
        self.levels[0] = self.leaves
        idx = index
        h = 0
        while h < self.height:
            layer = self.levels[h]
            if idx % 2 == 0:
                left = layer[idx]
                right = layer[idx + 1] if idx + 1 < len(layer) else self.zeros[h]
            else:
                left = layer[idx - 1]
                right = layer[idx]
            parent = _h2(left, right)

            upper = self.levels[h + 1]
            pidx = idx // 2
            if pidx < len(upper):
                upper[pidx] = parent
            else:
                upper.append(parent)
            idx = pidx
            h += 1

    def root(self):
        if len(self.leaves) == 0:
            return self.zeros[self.height]
        return self.levels[self.height][0]

    def gen_proof(self, index):
        """
        Return ordered proof of exactly `height` steps:
          [ (sibling_hex, "L"/"R"), ... ]
        "L" means sibling is on the left.
        "R" means sibling is on the right.
        Missing siblings are the zero hash of that level.
        """
        if index < 0 or index >= len(self.leaves):
            raise IndexError("leaf index out of range")

        proof = []
        idx = index
        h = 0
        while h < self.height:
            layer = self.levels[h]
            if idx % 2 == 0:
                sib = idx + 1
                direction = "R"
            else:
                sib = idx - 1
                direction = "L"

            if sib < len(layer):
                sib_hex = layer[sib]
            else:
                sib_hex = self.zeros[h]

            proof.append((sib_hex, direction))
            idx = idx // 2
            h += 1
        return proof

    def size(self):
        return len(self.leaves)


def verify_merkle_proof(leaf_hex, path, root_hex):
    """
    Fold an authentication path from gen_proof back up to a root
    and compare it with root_hex.
    """
    cur = leaf_hex.strip().lower()
    for sib_hex, direction in path:
        if direction == "L":
            cur = _h2(sib_hex, cur)
        elif direction == "R":
            cur = _h2(cur, sib_hex)
        else:
            raise ValueError("direction must be 'L' or 'R'")
    return cur == root_hex.strip().lower()
