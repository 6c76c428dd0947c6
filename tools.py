import contextlib
import hashlib
import io
import json

# Admin public key allowed to run Initialize (hex, 32 bytes Ed25519).
# None means the first signer to initialize the pool becomes its authority.
ADMIN_PK_HEX = None

# Domain separator mixed into every derived storage address
PROGRAM_DOMAIN = b"shielded-pool-v1"


# ==========================================================
# Encoding helpers
# ==========================================================
def decode_hex_exact(s, length, field_name):
    """
    Decode a hex payload field ("0x" prefix allowed).
    length=None accepts any length, including empty.
    Raise ValueError naming the field on any problem.
    """
    if not isinstance(s, str):
        raise ValueError(field_name + " must be hex string")
    body = s.strip()
    if body[:2] in ("0x", "0X"):
        body = body[2:]
    if len(body) % 2 != 0:
        raise ValueError(field_name + " has odd hex length")
    try:
        b = bytes.fromhex(body)
    except ValueError:
        raise ValueError(field_name + " not valid hex")
    if length is not None and len(b) != length:
        raise ValueError(field_name + " must be %d bytes" % length)
    return b


def canonical_json(obj) -> bytes:
    """Sorted keys, no whitespace. Signatures and block hashes are taken over this."""
    return json.dumps(obj, sort_keys=True, separators=(",", ":")).encode()


def get_hash(data) -> str:
    """
    SHA256 of bytes or a utf-8 string, as hex.
    """
    if isinstance(data, str):
        data = data.encode("utf-8")
    return hashlib.sha256(data).hexdigest()


# ==========================================================
# Log helpers
# ==========================================================
def short_hex(h, prefix_len=8):
    """abcd1234...9f0a for log lines; non-hex values pass through."""
    s = bytes(h).hex() if isinstance(h, (bytes, bytearray)) else h
    if not isinstance(s, str) or len(s) <= prefix_len * 2:
        return s
    return s[:prefix_len] + "..." + s[-4:]


def run_silently(func, *args, **kwargs):
    """
    Run func(*args, **kwargs) while discarding everything it prints.
    """
    with contextlib.redirect_stdout(io.StringIO()):
        return func(*args, **kwargs)
