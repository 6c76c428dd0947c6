# ================================
# node/core.py
# Core node implementation and request dispatching.
# Includes support for:
#   - Initialize
#   - Deposit / Withdraw / Swap
#   - UpdateDepositLimit / UpdateGlobalConfig
#   - GetTreeInfo
# ================================

from acct import TokenLedger
from blockchain import Blockchain, Block
from errors import ErrorCode, PoolError, StorageCollision
from storage import MemoryStorage
from tools import ADMIN_PK_HEX, short_hex
from verifying_key import load_verifying_key

from .handle_initialize import handle_initialize
from .handle_deposit_apply import handle_deposit
from .handle_withdraw_apply import handle_withdraw
from .handle_swap_apply import handle_swap
from .handle_admin_applies import handle_update_deposit_limit, handle_update_global_config
from .handle_get_tree_info import handle_get_tree_info
from .utils import _truncate_long_hex_in_obj, make_bad_response


class Node:
    """
    Node holds the pool state:
      - slot storage (tree state, global policy, nullifiers, token accounts),
      - the Groth16 verifying key of the transaction circuit,
      - an optional swap aggregator,
      - an internal blockchain of committed blocks (output events).

    Requests are received as envelopes with an application_type and payload,
    and dispatched to dedicated handlers. Every state-changing handler runs
    inside one storage transaction: it is committed only when the handler
    returns {"ok": True, ...}, and its new_block is then appended to the
    internal blockchain. Any failure rolls the whole transaction back.
    """

    def __init__(self, verifying_key=None, admin_pk_hex=ADMIN_PK_HEX,
                 storage=None, aggregator=None, dump_path=None):
        print("[NODE] Initializing Node instance...")

        if storage is None:
            storage = MemoryStorage()
        self.storage = storage

        if verifying_key is None:
            verifying_key = load_verifying_key()
            print("[NODE] Embedded verifying key loaded.")
        self.verifying_key = verifying_key

        self.admin_pk_hex = admin_pk_hex
        if admin_pk_hex is None:
            print("[NODE] No admin key configured, first initializer becomes authority.")

        self.aggregator = aggregator

        # Internal blockchain
        self.blockchain = Blockchain()
        self.dump_path = dump_path

        print("[NODE] Node initialization finished.")

    # -----------------------------------------------------------
    # Token faucet (local test networks)
    # -----------------------------------------------------------
    def mint_tokens(self, mint, owner, amount):
        """Credit amount of mint to owner's token account directly."""
        with self.storage.writer_lock:
            txn = self.storage.begin()
            try:
                TokenLedger(txn).credit(bytes(mint), bytes(owner), amount)
            except Exception:
                txn.rollback()
                raise
            txn.commit()
        print("[NODE] minted", amount, "of", short_hex(bytes(mint)), "to", short_hex(bytes(owner)))

    def balance_of(self, mint, owner):
        return TokenLedger(self.storage).balance_of(bytes(mint), bytes(owner))

    # -----------------------------------------------------------
    # Commit a new block into the internal blockchain
    # -----------------------------------------------------------
    def _commit_new_block(self, blk_dict):
        """
        Convert a block dict into a Block object and append it to the internal blockchain.
        """
        print("[NODE] Committing new_block into Node.blockchain...")

        blk = Block(
            tree_root=blk_dict["tree_root"],
            next_index=blk_dict["next_index"],
            events=blk_dict["events"],
        )
        self.blockchain.append_block(blk)
        if self.dump_path is not None:
            self.blockchain.dump_to_file(self.dump_path)

        print("[NODE] new_block committed, height =", blk.height)

    # -----------------------------------------------------------
    # Run a handler inside one storage transaction
    # -----------------------------------------------------------
    def _dispatch_and_commit_if_ok(self, handler, payload):
        """
        Call handler(node, txn, payload). Commit the transaction and the
        new_block if it returns {"ok": True, ...}; otherwise roll back.
        PoolError / StorageCollision become error responses.
        """
        with self.storage.writer_lock:
            txn = self.storage.begin()
            try:
                res = handler(self, txn, payload)
            except PoolError as e:
                txn.rollback()
                print("[NODE][ERROR]", e.code, "-", str(e))
                return make_bad_response(e.code, str(e))
            except StorageCollision as e:
                txn.rollback()
                print("[NODE][ERROR] storage collision at", short_hex(e.address))
                return make_bad_response(e.code, str(e))
            except Exception:
                txn.rollback()
                raise

            if not (isinstance(res, dict) and res.get("ok")):
                txn.rollback()
                print("[NODE] request rejected:", res.get("err") if isinstance(res, dict) else res)
                return res

            try:
                txn.commit()
            except StorageCollision as e:
                print("[NODE][ERROR] commit collision at", short_hex(e.address))
                return make_bad_response(e.code, str(e))

            if "new_block" in res:
                self._commit_new_block(res["new_block"])
            return res

    # -----------------------------------------------------------
    # Request dispatcher
    # -----------------------------------------------------------
    def deal_with_request(self, envelope):
        """
        Dispatch an incoming request envelope based on application_type.
        """
        if not isinstance(envelope, dict):
            return make_bad_response(ErrorCode.INVALID_REQUEST, "envelope must be an object")
        app_type = envelope.get("application_type")
        payload = envelope.get("payload")
        if payload is None:
            payload = {}

        print("\n[NODE] New request received, application_type =", app_type)
        print("[NODE] payload =", _truncate_long_hex_in_obj(payload))

        if app_type == "Initialize":
            return self._dispatch_and_commit_if_ok(handle_initialize, payload)

        if app_type == "Deposit":
            return self._dispatch_and_commit_if_ok(handle_deposit, payload)

        if app_type == "Withdraw":
            return self._dispatch_and_commit_if_ok(handle_withdraw, payload)

        if app_type == "Swap":
            return self._dispatch_and_commit_if_ok(handle_swap, payload)

        if app_type == "UpdateDepositLimit":
            return self._dispatch_and_commit_if_ok(handle_update_deposit_limit, payload)

        if app_type == "UpdateGlobalConfig":
            return self._dispatch_and_commit_if_ok(handle_update_global_config, payload)

        if app_type == "GetTreeInfo":
            return handle_get_tree_info(self, payload)

        print("[NODE][ERROR] Unknown application_type:", app_type)
        return make_bad_response(ErrorCode.INVALID_REQUEST, "unknown application_type")
