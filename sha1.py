"""SHA-1 digest engine (FIPS 180-1 / RFC 3174).

This module provides a small, readable implementation of SHA-1 over a single
complete buffer. The SHA1 class holds the five 32-bit chaining registers
h0..h4 of one digest computation; they are updated as 512-bit blocks are
compressed. The compression function can also run a reduced number of rounds
(1-4 rounds = 20 steps each; full SHA-1 uses 4), which the CNF model in
collider.py relies on.

"""
import struct


MASK32 = 0xffffffff
MASK64 = 0xffffffffffffffff


class DigestError(Exception):
    """Raised when the engine cannot build its internal buffers."""


class SHA1:

    # Initial chaining value
    IV = (0x67452301, 0xefcdab89, 0x98badcfe, 0x10325476, 0xc3d2e1f0)

    # One additive constant per round of 20 steps
    K_table = (0x5a827999, 0x6ed9eba1, 0x8f1bbcdc, 0xca62c1d6)

    def __init__(self):
        """Initialize to the SHA-1 initial vector (IV)."""
        self.h0, self.h1, self.h2, self.h3, self.h4 = SHA1.IV

    @staticmethod
    def K(i):
        """Return the additive constant for step index i (0 <= i < 80)."""
        if not 0 <= i < 80:
            raise ValueError("Invalid loop index")
        return SHA1.K_table[i // 20]

    @staticmethod
    def F(b, c, d, i):
        """SHA-1 non-linear boolean function selected by step index i.

        Round 0 (i < 20): (b & c) | (~b & d)          choose
        Round 1 (i < 40): b ^ c ^ d                    parity
        Round 2 (i < 60): (b & c) | (b & d) | (c & d)  majority
        Round 3 (i < 80): b ^ c ^ d                    parity
        """
        if not 0 <= i < 80:
            raise ValueError("Invalid loop index")
        if i < 20:
            return ((b & c) | (~b & d)) & MASK32
        elif i < 40:
            return b ^ c ^ d
        elif i < 60:
            return (b & c) | (b & d) | (c & d)
        return b ^ c ^ d

    @staticmethod
    def ROTL(x, n):
        """Rotate the 32-bit word x left by n bits."""
        x = x & MASK32
        return ((x << n) | (x >> (32 - n))) & MASK32

    @staticmethod
    def sha1_padded(input_bytes, message_length=None):
        """Return input_bytes padded to a multiple of 64 bytes per SHA-1.

        Padding: 0x80 byte, then 0x00 bytes up to 56 mod 64, then the
        64-bit big-endian length in bits. The bit count is taken modulo
        2^64, so lengths of 2^61 bytes and more wrap exactly like every
        other SHA-1 implementation. message_length overrides the length
        written into that field.
        """
        if message_length is None:
            message_length = len(input_bytes)
        num_bits = (message_length * 8) & MASK64
        pad_zeros = (55 - len(input_bytes) % 64) % 64
        return bytes(input_bytes) + b"\x80" + pad_zeros * b"\x00" + struct.pack(">Q", num_bits)

    @staticmethod
    def schedule(block):
        """Expand one 64-byte block into its 80-word message schedule.

        Words 0-15 are the block read big-endian; the rest follow
        w[i] = ROTL(w[i-3] ^ w[i-8] ^ w[i-14] ^ w[i-16], 1).
        """
        if len(block) != 64:
            raise ValueError("block must be 64 bytes, got %d" % len(block))
        w = list(struct.unpack(">16I", block))
        for i in range(16, 80):
            w.append(SHA1.ROTL(w[i-3] ^ w[i-8] ^ w[i-14] ^ w[i-16], 1))
        return w

    @staticmethod
    def sha1_iteration(a, b, c, d, e, w, i):
        """Perform one SHA-1 step (i) on state (a,b,c,d,e) with schedule word w."""
        temp = (SHA1.ROTL(a, 5) + SHA1.F(b, c, d, i) + e + SHA1.K(i) + w) & MASK32
        return temp, a, SHA1.ROTL(b, 30), c, d

    def sha1_chunk(self, input_bytes, num_rounds=4):
        """Process one 64-byte chunk and update internal state."""
        assert num_rounds in [1, 2, 3, 4]
        w = SHA1.schedule(input_bytes)
        a, b, c, d, e = self.h0, self.h1, self.h2, self.h3, self.h4

        for i in range(num_rounds * 20):
            a, b, c, d, e = SHA1.sha1_iteration(a, b, c, d, e, w[i], i)

        self.h0 = (self.h0 + a) & MASK32
        self.h1 = (self.h1 + b) & MASK32
        self.h2 = (self.h2 + c) & MASK32
        self.h3 = (self.h3 + d) & MASK32
        self.h4 = (self.h4 + e) & MASK32

    def state_bytes(self):
        """Serialize h0..h4 big-endian into the 20-byte digest."""
        return struct.pack(">5I", self.h0, self.h1, self.h2, self.h3, self.h4)

    def hexdigest(self):
        """Render h0..h4 as 40 lowercase hex characters."""
        return "".join("%08x" % h for h in (self.h0, self.h1, self.h2, self.h3, self.h4))

    def sha1_digest(self, input_bytes, num_rounds=4):
        """Compute the SHA-1 digest of input_bytes and return it as 20 bytes.

        The message is always padded here, so input_bytes is the raw
        message, never an already padded one.
        """
        self.h0, self.h1, self.h2, self.h3, self.h4 = SHA1.IV
        padded = SHA1.sha1_padded(input_bytes)
        for i in range(0, len(padded), 64):
            self.sha1_chunk(padded[i:i+64], num_rounds)
        return self.state_bytes()


def generatehex(digest):
    """Render a 20-byte digest as 40 lowercase hex characters."""
    if len(digest) != 20:
        raise ValueError("digest must be 20 bytes, got %d" % len(digest))
    return "".join("%02x" % byte for byte in digest)


def sha1digest(data, length=None):
    """Hash data[:length] and return (digest, hexdigest).

    Each call uses its own SHA1 state, so independent calls may run
    concurrently. Raises DigestError if the padded buffer cannot be
    allocated.
    """
    try:
        view = memoryview(data)
    except TypeError:
        raise TypeError("data must be bytes-like, not %s" % type(data).__name__) from None
    if not view.c_contiguous:
        view = memoryview(view.tobytes())
    # lengths count bytes, whatever the item format of the buffer
    view = view.cast("B")
    if length is None:
        length = len(view)
    if not 0 <= length <= len(view):
        raise ValueError("length %d outside buffer of %d bytes" % (length, len(view)))
    message = view[:length]
    sha = SHA1()
    try:
        digest = sha.sha1_digest(message)
    except MemoryError as e:
        raise DigestError("cannot allocate padded message of %d bytes" % length) from e
    return digest, sha.hexdigest()
