# blockchain.py
# Event ledger of the pool node: one block per committed request.
#
# A block commits to the tree position after the request (tree_root,
# next_index) and to the events it emitted; blocks are linked by
# previous_block_hash starting from GENESIS_PREV_HASH.

import os
import json

from tools import canonical_json, get_hash

GENESIS_PREV_HASH = "0" * 64


class Block:
    """
    Fields:
      - height / previous_block_hash / block_hash: set by Blockchain.append_block
      - tree_root: hex root of the commitment tree after the block
      - next_index: next free leaf index after the block
      - events: list of event dicts, each with an "event_type"
    """

    def __init__(self, tree_root, next_index, events):
        self.height = None
        self.previous_block_hash = None
        self.block_hash = None

        self.tree_root = tree_root
        self.next_index = next_index
        self.events = events

    def header(self):
        return {
            "height": self.height,
            "previous_block_hash": self.previous_block_hash,
            "tree_root": self.tree_root,
            "next_index": self.next_index,
            "events_hash": get_hash(canonical_json(self.events)),
        }

    def compute_hash(self):
        return get_hash(canonical_json(self.header()))

    def to_dict(self):
        d = self.header()
        d["block_hash"] = self.block_hash
        d["events"] = self.events
        return d


class Blockchain:
    """
    Append-only list of blocks, with lookup by hash and by event type.
    """

    def __init__(self):
        self.lst_of_blocks = []
        self._by_hash = {}
        # event_type -> list of (height, event), in append order
        self._by_type = {}
        print("[BLOCKCHAIN] New empty event ledger created.")

    def append_block(self, block):
        """Link block to the current tip, index its events and return it."""
        if self.lst_of_blocks:
            block.previous_block_hash = self.lst_of_blocks[-1].block_hash
        else:
            block.previous_block_hash = GENESIS_PREV_HASH
        block.height = len(self.lst_of_blocks)
        block.block_hash = block.compute_hash()

        self.lst_of_blocks.append(block)
        self._by_hash[block.block_hash] = block
        for ev in block.events:
            self._by_type.setdefault(ev.get("event_type"), []).append((block.height, ev))

        types = ",".join(ev.get("event_type", "?") for ev in block.events)
        print("[BLOCKCHAIN] block", block.height, block.block_hash[:16] + "...", "events =", types)
        return block

    def get_newest_block(self):
        if not self.lst_of_blocks:
            return None
        return self.lst_of_blocks[-1]

    def get_block_by_height(self, height):
        if 0 <= height < len(self.lst_of_blocks):
            return self.lst_of_blocks[height]
        return None

    def get_block_by_hash(self, block_hash_hex):
        return self._by_hash.get(block_hash_hex)

    def get_events(self, event_type=None, from_height=0):
        """
        Events of blocks at height >= from_height, oldest first.
        Clients replay CommitmentData this way to rebuild their tree mirror.
        """
        if event_type is not None:
            return [ev for h, ev in self._by_type.get(event_type, []) if h >= from_height]
        out = []
        for blk in self.lst_of_blocks[max(from_height, 0):]:
            out.extend(blk.events)
        return out

    def verify_chain(self):
        """Recompute every link and hash; False on the first broken block."""
        prev = GENESIS_PREV_HASH
        for i, blk in enumerate(self.lst_of_blocks):
            if blk.height != i:
                print("[BLOCKCHAIN][ERROR] block", i, "has height", blk.height)
                return False
            if blk.previous_block_hash != prev:
                print("[BLOCKCHAIN][ERROR] block", i, "does not link to", prev[:16] + "...")
                return False
            if blk.block_hash != blk.compute_hash():
                print("[BLOCKCHAIN][ERROR] block", i, "content does not match its hash")
                return False
            prev = blk.block_hash
        print("[BLOCKCHAIN] chain of", len(self.lst_of_blocks), "blocks verified.")
        return True

    def __str__(self):
        lines = ["=== Pool event ledger ===", "number_of_blocks: %d" % len(self.lst_of_blocks)]
        for event_type in sorted(self._by_type, key=str):
            lines.append("  %s: %d" % (event_type, len(self._by_type[event_type])))
        lines.append("verify_chain: %s" % ("OK" if self.verify_chain() else "FAIL"))
        return "\n".join(lines)

    def dump_to_file(self, filepath=None, reverse=False):
        """
        Overwrite filepath (default pool_blocks.txt next to this module) with
        one '=== Block <height> ===' section per block, oldest first unless
        reverse is set.
        """
        if filepath is None:
            filepath = os.path.join(os.path.dirname(__file__), "pool_blocks.txt")

        blocks = list(reversed(self.lst_of_blocks)) if reverse else self.lst_of_blocks
        try:
            with open(filepath, "w", encoding="utf-8") as f:
                f.write(str(self) + "\n\n")
                for blk in blocks:
                    f.write("=== Block %d ===\n" % blk.height)
                    f.write(json.dumps(blk.to_dict(), indent=2, sort_keys=True))
                    f.write("\n\n")
            print("[BLOCKCHAIN] ledger written to", filepath)
        except OSError as e:
            print("[BLOCKCHAIN][ERROR] failed to write", filepath, ":", e)
