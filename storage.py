# storage.py
# Slot storage for the pool node.
#
# MemoryStorage keeps committed slots (address hex -> bytes).
# StorageTxn stages writes and creations on top of it; nothing reaches
# MemoryStorage until commit(), so a failed request leaves no trace.

import hashlib
import threading

from errors import StorageCollision
from tools import PROGRAM_DOMAIN, short_hex

CREATED = "created"
ALREADY_EXISTS = "already_exists"


def derive_address(*seeds) -> str:
    """
    Deterministic slot address: sha256(domain || len(seed) || seed || ...).
    Seeds may be bytes or str (str is UTF-8 encoded).
    """
    h = hashlib.sha256()
    h.update(PROGRAM_DOMAIN)
    for seed in seeds:
        if isinstance(seed, str):
            seed = seed.encode("utf-8")
        seed = bytes(seed)
        h.update(len(seed).to_bytes(2, "little"))
        h.update(seed)
    return h.hexdigest()


class MemoryStorage:
    """
    Committed state. Reads are plain dict lookups; commits take the lock so
    that concurrent transactions observe each other's creations atomically.
    """

    def __init__(self):
        self._slots = {}
        self._lock = threading.Lock()
        # Held by a state-changing request from its first read to commit.
        # TreeState has a single logical writer; nullifier creations are
        # re-checked under _lock regardless.
        self.writer_lock = threading.RLock()

    def exists(self, address):
        return address in self._slots

    def read(self, address):
        return self._slots.get(address)

    def begin(self):
        return StorageTxn(self)

    def _apply(self, created, writes):
        with self._lock:
            for address in created:
                if address in self._slots:
                    print("[STORAGE][WARN] commit lost create race on", short_hex(address))
                    raise StorageCollision(address)
            for address in writes:
                self._slots[address] = writes[address]

    def __len__(self):
        return len(self._slots)


class StorageTxn:
    """
    Transaction-scoped view: reads see staged writes first, then committed
    state. create_if_absent checks both layers.
    """

    def __init__(self, base):
        self._base = base
        self._writes = {}
        self._created = []
        self._closed = False

    def _check_open(self):
        if self._closed:
            raise RuntimeError("storage transaction already closed")

    def exists(self, address):
        return address in self._writes or self._base.exists(address)

    def read(self, address):
        self._check_open()
        if address in self._writes:
            return self._writes[address]
        return self._base.read(address)

    def write(self, address, data):
        self._check_open()
        if not isinstance(data, (bytes, bytearray)):
            raise TypeError("slot data must be bytes")
        self._writes[address] = bytes(data)

    def create_if_absent(self, address, data=b""):
        self._check_open()
        if self.exists(address):
            return ALREADY_EXISTS
        self._writes[address] = bytes(data)
        self._created.append(address)
        return CREATED

    def commit(self):
        self._check_open()
        self._closed = True
        self._base._apply(self._created, self._writes)

    def rollback(self):
        self._closed = True
        self._writes = {}
        self._created = []
