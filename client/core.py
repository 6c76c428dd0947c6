#!/usr/bin/env python3
# client/core.py
# Pool client: signing identity, commitment tree mirror and request builders.
# Concrete Deposit / Withdraw / Swap envelopes are built in client.apply_for_*.

import os
import sys

# ---- ensure project root is importable ----
THIS_FILE = os.path.abspath(__file__)
CLIENT_DIR = os.path.dirname(THIS_FILE)
PROJECT_ROOT = os.path.abspath(os.path.join(CLIENT_DIR, ".."))

if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)
# -------------------------------------------

from wrappers.ed25519_wrapper import Ed25519Keypair

from .apply_for_transact import build_apply_for_deposit_envelope, build_apply_for_withdraw_envelope
from .apply_for_swap import build_apply_for_swap_envelope

from merkle_tree import MerkleTree, verify_merkle_proof
from pool_types import CommitmentData
from tools import canonical_json, get_hash, short_hex


class Client:
    """
    Pool client:

      - holds one Ed25519 identity used as signer (depositor, relayer or
        authority, depending on the request);
      - mirrors the commitment tree from the node's CommitmentData events,
        so it can name a current root and produce authentication paths;
      - builds signed request envelopes.
    """

    def __init__(self, sk=None):
        self.keypair = Ed25519Keypair()
        if sk is None:
            self.keypair.get_sk()
        else:
            self.keypair.set_sk(sk)
        self.pk = self.keypair.get_pk_from_sk()

        self.tree = None
        self.synced_height = 0
        self.lst_of_commitments = []

        print("[CLIENT] Client initialized, pk =", short_hex(self.pk))

    def get_pk_hex(self):
        return self.pk.hex()

    # ---------------- signing ----------------
    def sign_payload(self, payload):
        """
        Set payload["signer"] to this client's pk and payload["signature"] to
        the signature over SHA256(canonical_json(payload without signature)).
        Returns the payload (modified in place).
        """
        payload["signer"] = self.pk.hex()
        if "signature" in payload:
            del payload["signature"]
        digest_bytes = bytes.fromhex(get_hash(canonical_json(payload)))
        r, s, raw = self.keypair.sign(digest_bytes)
        payload["signature"] = raw.hex()
        return payload

    # ---------------- tree mirror ----------------
    def fetch_tree_info(self, node, nullifiers=None):
        payload = {}
        if nullifiers:
            payload["nullifiers"] = [bytes(n).hex() for n in nullifiers]
        envelope = {
            "application_type": "GetTreeInfo",
            "payload": payload,
        }
        return node.deal_with_request(envelope)

    def sync_tree(self, node):
        """
        Replay new CommitmentData events from node.blockchain into the local
        mirror and compare the mirror root with the node's current root.
        Returns True if they match.
        """
        print("\n[CLIENT][SyncTree] syncing commitment tree from node...")
        info = self.fetch_tree_info(node)
        if not isinstance(info, dict) or not info.get("ok"):
            print("[CLIENT][SyncTree][ERROR] GetTreeInfo failed:", info)
            return False
        if not info.get("initialized"):
            print("[CLIENT][SyncTree] pool not initialized yet.")
            return False

        if self.tree is None or self.tree.height != info["height"]:
            self.tree = MerkleTree(info["height"])
            self.synced_height = 0
            self.lst_of_commitments = []

        chain = node.blockchain
        events = chain.get_events("CommitmentData", self.synced_height)
        for ev in events:
            data = CommitmentData.from_dict(ev)
            if data.index != self.tree.size():
                print("[CLIENT][SyncTree][ERROR] event index", data.index,
                      "does not follow local size", self.tree.size())
                return False
            self.tree.append(data.commitment0.hex())
            self.tree.append(data.commitment1.hex())
            self.lst_of_commitments.append(data)
        self.synced_height = len(chain.lst_of_blocks)

        local_root = self.tree.root()
        if local_root != info["root"]:
            print("[CLIENT][SyncTree][ERROR] root mismatch: local =", short_hex(local_root),
                  ", node =", short_hex(info["root"]))
            return False

        print("[CLIENT][SyncTree] mirror synced, leaves =", self.tree.size(),
              ", root =", short_hex(local_root))
        return True

    def current_root(self):
        if self.tree is None:
            raise RuntimeError("tree not synced; call sync_tree(node) first")
        return bytes.fromhex(self.tree.root())

    def merkle_path(self, index):
        """Authentication path of leaf `index`: [(sibling_hex, "L"/"R"), ...]."""
        if self.tree is None:
            raise RuntimeError("tree not synced; call sync_tree(node) first")
        return self.tree.gen_proof(index)

    def check_leaf(self, index):
        path = self.merkle_path(index)
        return verify_merkle_proof(self.tree.leaves[index], path, self.tree.root())

    # ---------------- public API: shielded transactions ----------------
    def apply_for_deposit(self, mint, ext_amount, fee, fee_recipient, encrypted_output, prover):
        return build_apply_for_deposit_envelope(
            self, mint, ext_amount, fee, fee_recipient, encrypted_output, prover
        )

    def apply_for_withdraw(self, mint, recipient, ext_amount, fee, fee_recipient,
                           encrypted_output, prover):
        return build_apply_for_withdraw_envelope(
            self, mint, recipient, ext_amount, fee, fee_recipient, encrypted_output, prover
        )

    def apply_for_swap(self, mint_in, mint_out, ext_amount, ext_min_amount_out, fee,
                       fee_recipient, routing_data, encrypted_output, prover):
        return build_apply_for_swap_envelope(
            self, mint_in, mint_out, ext_amount, ext_min_amount_out, fee,
            fee_recipient, routing_data, encrypted_output, prover,
        )

    # ---------------- public API: administration ----------------
    def build_initialize_request(self, height=None, root_history_size=None, deposit_limit=None):
        payload = {}
        if height is not None:
            payload["height"] = int(height)
        if root_history_size is not None:
            payload["root_history_size"] = int(root_history_size)
        if deposit_limit is not None:
            payload["deposit_limit"] = int(deposit_limit)
        self.sign_payload(payload)
        print("[CLIENT][Initialize] request built by", short_hex(self.pk))
        return {"application_type": "Initialize", "payload": payload}

    def build_update_deposit_limit_request(self, new_limit):
        payload = {"new_limit": int(new_limit)}
        self.sign_payload(payload)
        print("[CLIENT][UpdateDepositLimit] request built, new_limit =", new_limit)
        return {"application_type": "UpdateDepositLimit", "payload": payload}

    def build_update_global_config_request(self, deposit_fee_rate=None, withdrawal_fee_rate=None,
                                           fee_error_margin=None):
        payload = {}
        if deposit_fee_rate is not None:
            payload["deposit_fee_rate"] = deposit_fee_rate
        if withdrawal_fee_rate is not None:
            payload["withdrawal_fee_rate"] = withdrawal_fee_rate
        if fee_error_margin is not None:
            payload["fee_error_margin"] = fee_error_margin
        self.sign_payload(payload)
        print("[CLIENT][UpdateGlobalConfig] request built:", payload)
        return {"application_type": "UpdateGlobalConfig", "payload": payload}
