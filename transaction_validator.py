# transaction_validator.py
# Admission checks shared by deposit, withdraw and swap.
#
# Fixed order, cheapest first:
#   1. root is in the recent root history          -> UnknownRoot
#   2. ext-data hash matches the proof              -> ExtDataHashMismatch
#   3. public amounts match (ext_amount, fee)       -> InvalidPublicAmountData
#   4. fee meets the policy minimum                 -> InvalidFeeAmount / ArithmeticOverflow
#   5. Groth16 proof verifies                       -> InvalidProof
#   6. both input nullifiers are consumed           -> StorageCollision
#   7. both output commitments are appended, event returned
#
# Steps 1-5 never write state. Steps 6-7 write into the caller's StorageTxn
# and TreeState, so nothing is visible until the caller commits. Value
# transfers run between steps 6 and 7 in the node handlers.

import hashlib

from errors import ErrorCode, PoolError
from field_codec import (
    ZERO32,
    be_bytes_to_fr,
    compute_public_amount,
    le_bytes_to_fr,
)
from nullifier_registry import consume_pair
from pool_types import CommitmentData
from state import MAX_BASIS_POINTS
from tools import short_hex
from wrappers.groth16_bn254_wrapper import verify_groth16_proof

U128_MAX = (1 << 128) - 1


# ==========================================================
# Balance and fee policy
# ==========================================================
def check_public_amount(ext_amount, fee, public_amount_bytes):
    """
    True iff public_amount_bytes (big-endian, reduced mod r) equals the
    field encoding of (ext_amount, fee). Never raises for bad amounts.
    """
    expected = compute_public_amount(ext_amount, fee)
    if expected is None:
        return False
    try:
        provided = be_bytes_to_fr(public_amount_bytes)
    except (TypeError, ValueError):
        return False
    return expected == provided


def _checked_mul(a, b):
    r = a * b
    if r < 0 or r > U128_MAX:
        raise PoolError(ErrorCode.ARITHMETIC_OVERFLOW, "multiply")
    return r


def _checked_sub(a, b):
    r = a - b
    if r < 0:
        raise PoolError(ErrorCode.ARITHMETIC_OVERFLOW, "subtract")
    return r


def _min_acceptable_fee(amount, rate, fee_error_margin):
    expected_fee = _checked_mul(amount, rate) // MAX_BASIS_POINTS
    if expected_fee == 0:
        return 0
    multiplier = _checked_sub(MAX_BASIS_POINTS, fee_error_margin)
    return _checked_mul(expected_fee, multiplier) // MAX_BASIS_POINTS


def validate_fee(ext_amount, provided_fee, deposit_fee_rate, withdrawal_fee_rate, fee_error_margin):
    """
    Deposit (ext_amount > 0) checks against deposit_fee_rate, withdrawal
    (ext_amount < 0) against withdrawal_fee_rate; zero skips the check.

      expected = floor(|ext_amount| * rate / 10000)
      minimum  = floor(expected * (10000 - margin) / 10000), or 0 if expected is 0

    Raises PoolError(InvalidFeeAmount) if provided_fee < minimum and
    PoolError(ArithmeticOverflow) when an intermediate leaves the u128 range.
    """
    if ext_amount > 0:
        minimum = _min_acceptable_fee(ext_amount, deposit_fee_rate, fee_error_margin)
    elif ext_amount < 0:
        if ext_amount == -(1 << 63):
            raise PoolError(ErrorCode.ARITHMETIC_OVERFLOW, "negate i64::MIN")
        minimum = _min_acceptable_fee(-ext_amount, withdrawal_fee_rate, fee_error_margin)
    else:
        return

    if provided_fee < minimum:
        raise PoolError(ErrorCode.INVALID_FEE_AMOUNT,
                        "fee=%d minimum=%d" % (provided_fee, minimum))


# ==========================================================
# Ext-data binding
# ==========================================================
def calculate_complete_ext_data_hash(ext_data, encrypted_output, mint_a, mint_b):
    return hashlib.sha256(ext_data.serialize(encrypted_output, mint_a, mint_b)).digest()


def calculate_swap_ext_data_hash(swap_ext_data, encrypted_output, mint_a, mint_b):
    return hashlib.sha256(swap_ext_data.serialize(encrypted_output, mint_a, mint_b)).digest()


def ext_data_hash_matches(calculated_hash, proof_ext_data_hash):
    """
    The plaintext sha256 is read little-endian, the proof field big-endian;
    both are reduced mod r before comparing.
    """
    return le_bytes_to_fr(calculated_hash) == be_bytes_to_fr(proof_ext_data_hash)


# ==========================================================
# Proof
# ==========================================================
def build_public_inputs(proof, mint_a, mint_b):
    return [
        proof.root,
        proof.public_amount0,
        proof.public_amount1,
        proof.ext_data_hash,
        bytes(mint_a),
        bytes(mint_b),
        proof.input_nullifiers[0],
        proof.input_nullifiers[1],
        proof.output_commitments[0],
        proof.output_commitments[1],
    ]


def verify_proof(proof, vk, mint_a, mint_b):
    return verify_groth16_proof(
        proof.proof_a,
        proof.proof_b,
        proof.proof_c,
        build_public_inputs(proof, mint_a, mint_b),
        vk,
    )


class TransactionValidator:
    """
    Runs the admission checks against one loaded tree and policy.

    tree   : IncrementalMerkleTree (its TreeState is mutated by settle)
    policy : GlobalPolicy
    vk     : Groth16VerifyingKey
    """

    def __init__(self, tree, policy, vk):
        self.tree = tree
        self.policy = policy
        self.vk = vk

    # ---------------- individual steps ----------------

    def check_root(self, proof):
        if not self.tree.is_known_root(proof.root):
            print("[VALIDATOR] unknown root", short_hex(proof.root))
            raise PoolError(ErrorCode.UNKNOWN_ROOT, short_hex(proof.root))

    def check_binding(self, calculated_hash, proof):
        if not ext_data_hash_matches(calculated_hash, proof.ext_data_hash):
            print("[VALIDATOR] ext data hash mismatch, calculated =", short_hex(calculated_hash))
            raise PoolError(ErrorCode.EXT_DATA_HASH_MISMATCH)

    def check_balance(self, ext_amount, fee, public_amount_bytes, slot):
        if not check_public_amount(ext_amount, fee, public_amount_bytes):
            print("[VALIDATOR] public amount %d does not match ext_amount=%d fee=%d"
                  % (slot, ext_amount, fee))
            raise PoolError(ErrorCode.INVALID_PUBLIC_AMOUNT_DATA, "public_amount%d" % slot)

    def check_fee(self, ext_amount, fee):
        validate_fee(
            ext_amount,
            fee,
            self.policy.deposit_fee_rate,
            self.policy.withdrawal_fee_rate,
            self.policy.fee_error_margin,
        )

    def check_swap_fee(self, ext_amount, fee):
        # swaps are charged at the deposit rate for both directions
        validate_fee(
            ext_amount,
            fee,
            self.policy.deposit_fee_rate,
            self.policy.deposit_fee_rate,
            self.policy.fee_error_margin,
        )

    def check_proof(self, proof, mint_a, mint_b):
        if not verify_proof(proof, self.vk, mint_a, mint_b):
            raise PoolError(ErrorCode.INVALID_PROOF)

    # ---------------- flows ----------------

    def validate_transact(self, proof, ext_data, encrypted_output, mint):
        """Steps 1-5 for a single-asset deposit or withdraw."""
        self.check_root(proof)

        calculated = calculate_complete_ext_data_hash(ext_data, encrypted_output, mint, mint)
        self.check_binding(calculated, proof)

        self.check_balance(ext_data.ext_amount, ext_data.fee, proof.public_amount0, 0)
        if proof.public_amount1 != ZERO32:
            print("[VALIDATOR] public_amount1 must be zero for a single-asset transaction")
            raise PoolError(ErrorCode.INVALID_PUBLIC_AMOUNT_DATA, "public_amount1")

        self.check_fee(ext_data.ext_amount, ext_data.fee)
        self.check_proof(proof, mint, mint)
        print("[VALIDATOR] transaction admitted, ext_amount =", ext_data.ext_amount)

    def validate_swap(self, proof, swap_ext_data, encrypted_output, mint_in, mint_out):
        """Steps 1-5 for a two-asset swap; slot 1 carries the minimum output."""
        self.check_root(proof)

        calculated = calculate_swap_ext_data_hash(swap_ext_data, encrypted_output, mint_in, mint_out)
        self.check_binding(calculated, proof)

        if swap_ext_data.ext_amount >= 0:
            raise PoolError(ErrorCode.INVALID_EXT_AMOUNT, "swap ext_amount must be negative")
        if swap_ext_data.ext_min_amount_out < 0:
            raise PoolError(ErrorCode.INVALID_EXT_AMOUNT, "ext_min_amount_out must be non-negative")

        self.check_balance(swap_ext_data.ext_amount, swap_ext_data.fee, proof.public_amount0, 0)
        self.check_balance(swap_ext_data.ext_min_amount_out, 0, proof.public_amount1, 1)

        self.check_swap_fee(swap_ext_data.ext_amount, swap_ext_data.fee)
        self.check_proof(proof, mint_in, mint_out)
        print("[VALIDATOR] swap admitted, ext_amount =", swap_ext_data.ext_amount)

    def consume_nullifiers(self, txn, proof):
        """Step 6. Only called after check_proof passed."""
        consume_pair(txn, proof.input_nullifiers)

    def append_outputs(self, proof, encrypted_output):
        """Step 7: append both commitments and return the output event."""
        index = self.tree.state.next_index
        self.tree.append(proof.output_commitments[0])
        self.tree.append(proof.output_commitments[1])
        print("[VALIDATOR] commitments appended at", index, "new root =", short_hex(self.tree.root()))

        return CommitmentData(
            index,
            proof.output_commitments[0],
            proof.output_commitments[1],
            encrypted_output,
        )
