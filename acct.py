# acct.py
# Token accounts and the in-memory value-transfer ledger.
#
# One TokenAccount per (mint, owner), stored in slot
# derive_address("token", mint, owner). The pool reserve of a mint is the
# token account owned by the global-config address.

import struct

from errors import ErrorCode, PoolError
from field_codec import U64_MAX
from state import global_config_address
from storage import derive_address
from tools import short_hex

TOKEN_SEED = "token"

_TOKEN_LAYOUT = struct.Struct("<32s32sQ")


def token_account_address(mint, owner):
    return derive_address(TOKEN_SEED, bytes(mint), bytes(owner))


def reserve_owner():
    """Owner identity of every reserve account (the global-config address)."""
    return bytes.fromhex(global_config_address())


class TokenAccount:
    """
    Design notes:
      - owner and mint are 32-byte identities, balance is a u64.
      - A missing slot reads as a zero-balance account; it is only written
        once something is credited or debited.
    """

    def __init__(self, owner, mint, balance=0):
        self.owner = bytes(owner)
        self.mint = bytes(mint)
        self.balance = balance

    @property
    def addr(self):
        return token_account_address(self.mint, self.owner)

    def to_bytes(self):
        return _TOKEN_LAYOUT.pack(self.owner, self.mint, self.balance)

    @classmethod
    def from_bytes(cls, data):
        owner, mint, balance = _TOKEN_LAYOUT.unpack(data)
        return cls(owner, mint, balance)


class TokenLedger:
    """
    Value transfer on top of a storage view (StorageTxn for state changes,
    MemoryStorage for read-only queries).
    """

    def __init__(self, txn):
        self.txn = txn

    def load(self, mint, owner):
        data = self.txn.read(token_account_address(mint, owner))
        if data is None:
            return TokenAccount(owner, mint, 0)
        return TokenAccount.from_bytes(data)

    def store(self, acct):
        self.txn.write(acct.addr, acct.to_bytes())

    def balance_of(self, mint, owner):
        return self.load(mint, owner).balance

    def credit(self, mint, owner, amount):
        if amount < 0:
            raise ValueError("amount must be non-negative")
        acct = self.load(mint, owner)
        if acct.balance + amount > U64_MAX:
            raise PoolError(ErrorCode.ARITHMETIC_OVERFLOW, "token balance")
        acct.balance = acct.balance + amount
        self.store(acct)

    def transfer(self, mint, from_owner, to_owner, amount):
        """Move amount of mint between two owners; InsufficientFunds if short."""
        if amount < 0:
            raise ValueError("amount must be non-negative")
        if amount == 0:
            return

        src = self.load(mint, from_owner)
        if src.balance < amount:
            print("[LEDGER] insufficient funds: owner =", short_hex(src.owner),
                  "balance =", src.balance, "amount =", amount)
            raise PoolError(ErrorCode.INSUFFICIENT_FUNDS,
                            "balance=%d amount=%d" % (src.balance, amount))
        src.balance = src.balance - amount
        self.store(src)
        self.credit(mint, to_owner, amount)
        print("[LEDGER] transfer", amount, "of", short_hex(bytes(mint)), ":",
              short_hex(bytes(from_owner)), "->", short_hex(bytes(to_owner)))
