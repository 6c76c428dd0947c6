# errors.py
# Error codes returned by the pool node.
#
# Handlers answer {"ok": False, "err": <code>, "msg": <text>}; deeper layers
# raise PoolError(code) and the node dispatcher turns it into that shape.


class ErrorCode:
    UNAUTHORIZED = "Unauthorized"
    INVALID_REQUEST = "InvalidRequest"
    ALREADY_INITIALIZED = "AlreadyInitialized"
    NOT_INITIALIZED = "NotInitialized"
    INVALID_TREE_PARAMETERS = "InvalidTreeParameters"
    EXT_DATA_HASH_MISMATCH = "ExtDataHashMismatch"
    UNKNOWN_ROOT = "UnknownRoot"
    INVALID_PUBLIC_AMOUNT_DATA = "InvalidPublicAmountData"
    INSUFFICIENT_FUNDS_FOR_WITHDRAWAL = "InsufficientFundsForWithdrawal"
    INSUFFICIENT_FUNDS_FOR_FEE = "InsufficientFundsForFee"
    INSUFFICIENT_FUNDS = "InsufficientFunds"
    INVALID_PROOF = "InvalidProof"
    INVALID_EXT_AMOUNT = "InvalidExtAmount"
    ARITHMETIC_OVERFLOW = "ArithmeticOverflow"
    DEPOSIT_LIMIT_EXCEEDED = "DepositLimitExceeded"
    INVALID_FEE_RATE = "InvalidFeeRate"
    INVALID_FEE_AMOUNT = "InvalidFeeAmount"
    MERKLE_TREE_FULL = "MerkleTreeFull"
    INVALID_COMMITMENT = "InvalidCommitment"
    INVALID_SWAP_ROUTING_DATA = "InvalidSwapRoutingData"
    MATH_OVERFLOW = "MathOverflow"
    INSUFFICIENT_SWAP_OUTPUT = "InsufficientSwapOutput"


ERROR_MESSAGES = {
    ErrorCode.UNAUTHORIZED: "Not authorized to perform this action",
    ErrorCode.INVALID_REQUEST: "Malformed request payload",
    ErrorCode.ALREADY_INITIALIZED: "Pool is already initialized",
    ErrorCode.NOT_INITIALIZED: "Pool is not initialized",
    ErrorCode.INVALID_TREE_PARAMETERS: "Tree height and root history size must be positive and within limits",
    ErrorCode.EXT_DATA_HASH_MISMATCH: "External data hash does not match the one in the proof",
    ErrorCode.UNKNOWN_ROOT: "Root is not known in the tree",
    ErrorCode.INVALID_PUBLIC_AMOUNT_DATA: "Public amount is invalid",
    ErrorCode.INSUFFICIENT_FUNDS_FOR_WITHDRAWAL: "Insufficient funds for withdrawal",
    ErrorCode.INSUFFICIENT_FUNDS_FOR_FEE: "Insufficient funds for fee",
    ErrorCode.INSUFFICIENT_FUNDS: "Insufficient token balance for transfer",
    ErrorCode.INVALID_PROOF: "Proof is invalid",
    ErrorCode.INVALID_EXT_AMOUNT: "Invalid ext amount",
    ErrorCode.ARITHMETIC_OVERFLOW: "Arithmetic overflow/underflow occurred",
    ErrorCode.DEPOSIT_LIMIT_EXCEEDED: "Deposit limit exceeded",
    ErrorCode.INVALID_FEE_RATE: "Invalid fee rate: must be between 0 and 10000 basis points",
    ErrorCode.INVALID_FEE_AMOUNT: "Fee amount is below minimum required (must be at least (1 - fee_error_margin) * expected_fee)",
    ErrorCode.MERKLE_TREE_FULL: "Merkle tree is full: cannot add more leaves",
    ErrorCode.INVALID_COMMITMENT: "Commitment is not a canonical field element",
    ErrorCode.INVALID_SWAP_ROUTING_DATA: "Invalid swap routing data",
    ErrorCode.MATH_OVERFLOW: "Math overflow or underflow occurred",
    ErrorCode.INSUFFICIENT_SWAP_OUTPUT: "Insufficient swap output: received amount is less than minimum required",
}


class PoolError(Exception):
    """A policy, arithmetic or capacity failure carrying an ErrorCode value."""

    def __init__(self, code, detail=None):
        self.code = code
        self.detail = detail
        msg = ERROR_MESSAGES.get(code, code)
        if detail:
            msg = msg + ": " + str(detail)
        super().__init__(msg)


class StorageCollision(Exception):
    """create_if_absent hit an existing slot (double-spend on nullifiers)."""

    code = "AccountAlreadyInUse"

    def __init__(self, address):
        self.address = address
        super().__init__("storage slot already in use: " + address)
