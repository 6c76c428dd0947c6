# nullifier_registry.py
# Exactly-once spending of notes.
#
# A nullifier is spent iff the slot derive_address("nullifier", nf) exists.
# Slots are only ever created, never updated or removed.

from errors import StorageCollision
from storage import ALREADY_EXISTS, derive_address
from tools import short_hex

NULLIFIER_SEED = b"nullifier"


def nullifier_address(nullifier):
    if not isinstance(nullifier, (bytes, bytearray)) or len(nullifier) != 32:
        raise ValueError("nullifier must be 32 bytes")
    return derive_address(NULLIFIER_SEED, bytes(nullifier))


def consume(txn, nullifier):
    """
    Record the nullifier inside the transaction.
    An existing record raises StorageCollision, which aborts the whole request.
    """
    address = nullifier_address(nullifier)
    if txn.create_if_absent(address) == ALREADY_EXISTS:
        print("[NULLIFIER][WARN] already spent:", short_hex(bytes(nullifier)))
        raise StorageCollision(address)
    return address


def consume_pair(txn, nullifiers):
    """Consume both input nullifiers of a transaction, in order."""
    if len(nullifiers) != 2:
        raise ValueError("expected exactly 2 input nullifiers")
    consume(txn, nullifiers[0])
    consume(txn, nullifiers[1])


def is_spent(storage, nullifier):
    """Read-only query for clients; the validation path never calls this."""
    return storage.exists(nullifier_address(nullifier))
