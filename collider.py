"""CNF encoding of SHA-1 using PySAT for preimage experiments.

This module builds a SAT instance that models the SHA-1 compression function
over one or more 512-bit blocks. It supports:
  - fixing some or all input bits,
  - optionally constraining the final digest,
  - running a configurable number of rounds (20 steps each),
then asks a SAT solver to find a satisfying assignment.

All bit vectors are MSB-first, which matches SHA-1's big-endian words, so
message words and digest words map onto the variables without reordering.
"""
from pysat.solvers import Solver
from sha1 import SHA1


class SHA1Collider:
    """Builder that encodes SHA-1 as CNF and solves it with a SAT solver.

    Parameters
    - input_bytes: bytes or None. If provided, must be a multiple of 64 bytes
                   (i.e. already padded with SHA1.sha1_padded). Those bytes are
                   constrained into the instance. None leaves one block free.
    - exclude_input_bits: iterable of global bit indices (bit 0 is the MSB of
                   byte 0). These bits are left unconstrained so the solver can
                   pick them.
    - target_digest: optional 20-byte digest. If provided, the final
                   (h0..h4) state is constrained to match it.
    """

    def __init__(self, input_bytes, exclude_input_bits=(), target_digest=None, solver_name='g4'):
        assert input_bytes is None or len(input_bytes) % 64 == 0
        assert target_digest is None or len(target_digest) == 20
        num_chunks = len(input_bytes) // 64 if input_bytes is not None else 1
        self.solver = Solver(name=solver_name)
        self.var_idx = 1
        self.h = []
        self.x = []
        self.target_digest = target_digest
        self._init_vars(num_chunks)
        if input_bytes is not None:
            excluded = set(exclude_input_bits)
            for i in range(len(input_bytes)):
                byte = self._get_byte_vars(self.x, i)
                for j in range(8):
                    if i * 8 + j in excluded:
                        continue
                    bit = (input_bytes[i] >> (7 - j)) & 1
                    self.solver.add_clause([byte[j] if bit else -byte[j]])
        # Constrain the initial state to the SHA-1 initial vector (IV).
        for word, iv in zip(self.h, SHA1.IV):
            self._add_constant(word, iv)

    def _init_number(self, num_bits):
        """Allocate and return a fresh vector of SAT variables of length num_bits."""
        num = list(range(self.var_idx, self.var_idx + num_bits))
        self.var_idx += num_bits
        return num

    def _init_bit(self):
        """Allocate and return a fresh SAT variable (single bit)."""
        bit_var = self.var_idx
        self.var_idx += 1
        return bit_var

    def _init_vars(self, num_chunks):
        """Initialize message and state variables for the given chunk count."""
        self.x = self._init_number(512 * num_chunks)
        self.h = [self._init_number(32) for _ in range(5)]

    def _get_byte_vars(self, bit_array, byte_idx):
        """Return the 8-bit slice vars corresponding to byte_idx (MSB-first bytes)."""
        return bit_array[byte_idx*8:(byte_idx+1)*8]

    def _get_word_vars(self, bit_array, word_idx):
        """Return the 32-bit slice vars corresponding to word_idx (MSB-first words)."""
        return bit_array[word_idx*32:(word_idx+1)*32]

    def _add_equality(self, a, b):
        """Constrain vectors a and b to be bitwise equal (a[i] <-> b[i])."""
        assert len(a) == len(b)
        for i in range(len(a)):
            self.solver.add_clause([-a[i], b[i]])
            self.solver.add_clause([a[i], -b[i]])

    def _add_constant(self, bit_array, constant):
        """Fix bit_array to constant, MSB first. Returns bit_array."""
        assert 0 <= constant < 2 ** len(bit_array)
        for i in range(len(bit_array)):
            c_bit = (constant >> (len(bit_array) - i - 1)) & 1
            if c_bit == 1:
                self.solver.add_clause([bit_array[i]])
            else:
                self.solver.add_clause([-bit_array[i]])
        return bit_array

    def _add_or(self, a, b, c=None):
        """Bitwise OR: c = a | b. Returns c (allocates if None)."""
        assert len(a) == len(b)
        if c is not None:
            assert len(a) == len(c)
        else:
            c = self._init_number(len(a))
        for i in range(len(a)):
            self.solver.add_clause([a[i], b[i], -c[i]])
            self.solver.add_clause([-a[i], c[i]])
            self.solver.add_clause([-b[i], c[i]])
        return c

    def _add_and(self, a, b, c=None):
        """Bitwise AND: c = a & b. Returns c (allocates if None)."""
        assert len(a) == len(b)
        if c is not None:
            assert len(a) == len(c)
        else:
            c = self._init_number(len(a))
        for i in range(len(a)):
            self.solver.add_clause([-a[i], -b[i], c[i]])
            self.solver.add_clause([a[i], -c[i]])
            self.solver.add_clause([b[i], -c[i]])
        return c

    def _add_xor(self, a, b, c=None):
        """Bitwise XOR: c = a ^ b. Returns c (allocates if None)."""
        assert len(a) == len(b)
        if c is not None:
            assert len(a) == len(c)
        else:
            c = self._init_number(len(a))
        for i in range(len(a)):
            self.solver.add_clause([-a[i], -b[i], -c[i]])
            self.solver.add_clause([a[i], b[i], -c[i]])
            self.solver.add_clause([a[i], -b[i], c[i]])
            self.solver.add_clause([-a[i], b[i], c[i]])
        return c

    def _add_not(self, a, b=None):
        """Bitwise NOT: b = ~a. Returns b (allocates if None)."""
        if b is not None:
            assert len(a) == len(b)
        else:
            b = self._init_number(len(a))
        for i in range(len(a)):
            self.solver.add_clause([-a[i], -b[i]])
            self.solver.add_clause([a[i], b[i]])
        return b

    def _add_sum(self, a, b, c=None):
        """Add two n-bit vectors a and b modulo 2^n (ripple-carry adder)."""
        assert len(a) == len(b)
        if c is not None:
            assert len(a) == len(c)
        else:
            c = self._init_number(len(a))
        carry = self._init_number(len(a))  # carry[k] is the carry into bit k
        for i in range(len(a)):
            # Walk from LSB to MSB using idx (LSB = len(a)-1).
            idx = len(a) - i - 1
            if i == 0:
                self._add_xor([a[idx]], [b[idx]], [c[idx]])
                if idx > 0:
                    self._add_and([a[idx]], [b[idx]], [carry[idx-1]])
            else:
                ab_xor = self._init_bit()
                self._add_xor([a[idx]], [b[idx]], [ab_xor])
                self._add_xor([carry[idx]], [ab_xor], [c[idx]])
                if idx > 0:
                    cout1 = self._init_bit()
                    cout2 = self._init_bit()
                    self._add_and([a[idx]], [b[idx]], [cout1])
                    self._add_and([carry[idx]], [ab_xor], [cout2])
                    self._add_or([cout1], [cout2], [carry[idx-1]])
        return c

    def _add_rotate_left(self, a, n, b=None):
        """Rotate-left by n bits. Returns b (allocates if None)."""
        if b is not None:
            assert len(a) == len(b)
        else:
            b = self._init_number(len(a))
        for i in range(len(a)):
            b_idx = (len(a) + i - n) % len(a)
            self.solver.add_clause([a[i], -b[b_idx]])
            self.solver.add_clause([-a[i], b[b_idx]])
        return b

    def add_F(self, b, c, d, i):
        """CNF version of SHA-1's step-dependent boolean function."""
        if not 0 <= i < 80:
            raise ValueError("Invalid loop index")
        if i < 20:
            return self._add_or(self._add_and(b, c), self._add_and(self._add_not(b), d))
        elif 40 <= i < 60:
            bc = self._add_and(b, c)
            return self._add_or(self._add_or(bc, self._add_and(b, d)), self._add_and(c, d))
        return self._add_xor(self._add_xor(b, c), d)

    def add_schedule(self, chunk_idx, num_steps=80):
        """Encode the message schedule of one chunk; returns num_steps word vectors."""
        w = [self._get_word_vars(self.x, chunk_idx*16 + i) for i in range(16)]
        for i in range(16, num_steps):
            mixed = self._add_xor(self._add_xor(w[i-3], w[i-8]), self._add_xor(w[i-14], w[i-16]))
            w.append(self._add_rotate_left(mixed, 1))
        return w[:num_steps]

    def add_sha1_iteration(self, a, b, c, d, e, w, i):
        """One SHA-1 step updating (a,b,c,d,e) with schedule word w at step i."""
        f = self.add_F(b, c, d, i)
        k = self._add_constant(self._init_number(32), SHA1.K(i))
        rot_a = self._add_rotate_left(a, 5)
        temp = self._add_sum(self._add_sum(rot_a, f), self._add_sum(self._add_sum(e, k), w))
        return temp, a, self._add_rotate_left(b, 30), c, d

    def solve_sha1_chunk(self, chunk_idx, num_rounds=4):
        """Encode all steps for one 64-byte chunk and update state variables."""
        assert num_rounds in [1, 2, 3, 4]
        num_steps = num_rounds * 20
        w = self.add_schedule(chunk_idx, num_steps)

        a, b, c, d, e = self.h
        for i in range(num_steps):
            a, b, c, d, e = self.add_sha1_iteration(a, b, c, d, e, w[i], i)

        # State update: add the original state (chaining value).
        self.h = [self._add_sum(old, new) for old, new in zip(self.h, (a, b, c, d, e))]

    def solve_sha1(self, num_rounds=4):
        """Finalize the encoding for all chunks, add optional digest constraint, and solve.

        Returns (False, None) if UNSAT or interrupted; otherwise
        (True, (x_bytes, digest_bytes)).
        """
        for i in range(len(self.x) // 512):
            self.solve_sha1_chunk(i, num_rounds)

        if self.target_digest is not None:
            for j, word in enumerate(self.h):
                self._add_constant(word, int.from_bytes(self.target_digest[j*4:j*4+4], 'big'))

        sat = self.solver.solve_limited(expect_interrupt=True)
        if not sat:
            return False, None
        return True, self.process_solution(self.solver.get_model())

    def solution_to_bytes(self, model, vars):
        """Read a bit-vector assignment from model and pack into bytes (MSB-first)."""
        byte_vals = b""
        byte = 0
        for j, bit_var in enumerate(vars):
            bit_val = model[bit_var-1] > 0
            byte |= bit_val << (8 - (j % 8) - 1)
            if j % 8 == 7:
                byte_vals += byte.to_bytes(1, 'big')
                byte = 0
        return byte_vals

    def process_solution(self, model):
        """Extract (message_bytes, digest_bytes) from a satisfying assignment."""
        digest = b"".join(self.solution_to_bytes(model, word) for word in self.h)
        x = self.solution_to_bytes(model, self.x)
        return x, digest

    def delete(self):
        """Release the underlying solver."""
        self.solver.delete()
