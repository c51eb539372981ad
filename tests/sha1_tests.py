import array
import hashlib
import struct
import threading
import unittest
from unittest import mock

from sha1 import SHA1, DigestError, generatehex, sha1digest


class TestSHA1Padding(unittest.TestCase):

    def test_padding_lengths_are_block_multiples(self):
        for length in range(0, 200):
            padded = SHA1.sha1_padded(b"a" * length)
            self.assertEqual(len(padded) % 64, 0)
            self.assertEqual(padded[length], 0x80)

    def test_padding_straddles_block_boundary(self):
        expected_len = {55: 64, 56: 128, 63: 128, 64: 128, 65: 128, 119: 128, 120: 192}
        for length, padded_len in expected_len.items():
            self.assertEqual(len(SHA1.sha1_padded(b"x" * length)), padded_len)

    def test_padding_layout(self):
        padded = SHA1.sha1_padded(b"abc")
        self.assertEqual(padded[:4], b"abc\x80")
        self.assertEqual(padded[4:56], b"\x00" * 52)
        self.assertEqual(struct.unpack(">Q", padded[56:])[0], 24)

    def test_empty_input_pads_to_single_block(self):
        padded = SHA1.sha1_padded(b"")
        self.assertEqual(padded, b"\x80" + b"\x00" * 63)

    def test_bit_length_wraps_modulo_2_64(self):
        padded = SHA1.sha1_padded(b"", message_length=2 ** 61)
        self.assertEqual(padded[-8:], b"\x00" * 8)
        padded = SHA1.sha1_padded(b"", message_length=2 ** 61 + 1)
        self.assertEqual(struct.unpack(">Q", padded[-8:])[0], 8)


class TestSHA1Schedule(unittest.TestCase):

    def setUp(self):
        self.block = bytes(range(64))

    def test_first_words_are_big_endian(self):
        w = SHA1.schedule(self.block)
        self.assertEqual(len(w), 80)
        self.assertEqual(w[0], 0x00010203)
        self.assertEqual(w[15], 0x3c3d3e3f)

    def test_expansion_recurrence(self):
        w = SHA1.schedule(self.block)
        for i in range(16, 80):
            mixed = w[i-3] ^ w[i-8] ^ w[i-14] ^ w[i-16]
            self.assertEqual(w[i], ((mixed << 1) | (mixed >> 31)) & 0xffffffff)
            self.assertLess(w[i], 2 ** 32)

    def test_rejects_short_block(self):
        with self.assertRaises(ValueError):
            SHA1.schedule(b"\x00" * 63)


class TestSHA1RoundHelpers(unittest.TestCase):

    def test_rotl(self):
        self.assertEqual(SHA1.ROTL(0x80000000, 1), 1)
        self.assertEqual(SHA1.ROTL(0x12345678, 4), 0x23456781)
        self.assertEqual(SHA1.ROTL(0xffffffff, 30), 0xffffffff)

    def test_constants_by_quartile(self):
        self.assertEqual(SHA1.K(0), 0x5a827999)
        self.assertEqual(SHA1.K(19), 0x5a827999)
        self.assertEqual(SHA1.K(20), 0x6ed9eba1)
        self.assertEqual(SHA1.K(59), 0x8f1bbcdc)
        self.assertEqual(SHA1.K(79), 0xca62c1d6)

    def test_round_functions(self):
        b, c, d = 0xf0f0f0f0, 0xcccccccc, 0xaaaaaaaa
        self.assertEqual(SHA1.F(b, c, d, 0), 0xcacacaca)
        self.assertEqual(SHA1.F(b, c, d, 20), b ^ c ^ d)
        self.assertEqual(SHA1.F(b, c, d, 40), 0xe8e8e8e8)
        self.assertEqual(SHA1.F(b, c, d, 79), b ^ c ^ d)

    def test_choose_stays_unsigned(self):
        self.assertEqual(SHA1.F(0, 0, 0xffffffff, 5), 0xffffffff)

    def test_invalid_step_index(self):
        with self.assertRaises(ValueError):
            SHA1.F(0, 0, 0, 80)
        with self.assertRaises(ValueError):
            SHA1.K(-1)


class TestSHA1Digest(unittest.TestCase):

    KNOWN = [
        (b"", "da39a3ee5e6b4b0d3255bfef95601890afd80709"),
        (b"abc", "a9993e364706816aba3e25717850c26c9cd0d89d"),
        (b"abcdbcdecdefdefgefghfghighijhijkijkljklmklmnlmnomnopnopq",
         "84983e441c3bd26ebaae4aa1f95129e5e54670f1"),
        (b"The quick brown fox jumps over the lazy dog",
         "2fd4e1c67a2d28fced849ee1bb76e7391b93eb12"),
        (b"The quick brown fox jumps over the lazy cog",
         "de9f2c7fd25e1b3afad3e85a0bd17d9b100db4b3"),
    ]

    BOUNDARY = {
        55: "c1c8bbdc22796e28c0e15163d20899b65621d65a",
        56: "c2db330f6083854c99d4b5bfb6e8f29f201be699",
        63: "03f09f5b158a7a8cdad920bddc29b81c18a551f5",
        64: "0098ba824b5c16427bd7a1122a5a442a25ec644d",
        65: "11655326c708d70319be2610e8a57d9a5b959d3b",
        119: "ee971065aaa017e0632a8ca6c77bb3bf8b1dfc56",
        120: "f34c1488385346a55709ba056ddd08280dd4c6d6",
    }

    def test_known_vectors(self):
        for data, expected in self.KNOWN:
            digest, hexdigest = sha1digest(data)
            self.assertEqual(hexdigest, expected)
            self.assertEqual(digest, bytes.fromhex(expected))

    def test_million_a(self):
        _, hexdigest = sha1digest(b"a" * 1000000)
        self.assertEqual(hexdigest, "34aa973cd4c4daa4f61eeb2bdbad27316534016f")

    def test_block_boundaries(self):
        for length, expected in self.BOUNDARY.items():
            _, hexdigest = sha1digest(b"a" * length)
            self.assertEqual(hexdigest, expected, "length %d" % length)

    def test_matches_hashlib(self):
        for length in range(0, 130):
            data = bytes((i * 7 + length) & 0xff for i in range(length))
            digest, _ = sha1digest(data)
            self.assertEqual(digest, hashlib.sha1(data).digest())

    def test_hex_and_binary_agree(self):
        for data, _ in self.KNOWN:
            digest, hexdigest = sha1digest(data)
            self.assertEqual(generatehex(digest), hexdigest)
            self.assertEqual(bytes.fromhex(hexdigest), digest)
            self.assertEqual(len(hexdigest), 40)
            self.assertEqual(hexdigest, hexdigest.lower())

    def test_deterministic(self):
        data = b"The quick brown fox jumps over the lazy dog"
        self.assertEqual(sha1digest(data), sha1digest(data))

    def test_avalanche(self):
        dog, _ = sha1digest(b"The quick brown fox jumps over the lazy dog")
        cog, _ = sha1digest(b"The quick brown fox jumps over the lazy cog")
        differing_bits = bin(int.from_bytes(dog, "big") ^ int.from_bytes(cog, "big")).count("1")
        self.assertGreater(differing_bits, 40)
        self.assertTrue(all(dog[i:i+4] != cog[i:i+4] for i in range(0, 20, 4)))

    def test_length_prefix(self):
        digest, hexdigest = sha1digest(b"abcdef", 3)
        self.assertEqual(hexdigest, "a9993e364706816aba3e25717850c26c9cd0d89d")
        digest, _ = sha1digest(bytearray(b"abc"), 0)
        self.assertEqual(digest, bytes.fromhex("da39a3ee5e6b4b0d3255bfef95601890afd80709"))

    def test_multibyte_item_buffer(self):
        words = array.array("I", [1, 2, 3])
        digest, hexdigest = sha1digest(memoryview(words))
        self.assertEqual(digest, hashlib.sha1(words).digest())
        self.assertEqual(sha1digest(words)[0], digest)
        digest, _ = sha1digest(memoryview(words), 4)
        self.assertEqual(digest, hashlib.sha1(words.tobytes()[:4]).digest())

    def test_non_contiguous_buffer(self):
        digest, _ = sha1digest(memoryview(b"aXbXcX")[::2])
        self.assertEqual(digest.hex(), "a9993e364706816aba3e25717850c26c9cd0d89d")

    def test_invalid_arguments(self):
        with self.assertRaises(ValueError):
            sha1digest(b"abc", 4)
        with self.assertRaises(ValueError):
            sha1digest(b"abc", -1)
        with self.assertRaises(TypeError):
            sha1digest("abc")

    def test_allocation_failure_is_reported(self):
        with mock.patch.object(SHA1, "sha1_padded", side_effect=MemoryError):
            with self.assertRaises(DigestError) as ctx:
                sha1digest(b"abc")
        self.assertIsInstance(ctx.exception.__cause__, MemoryError)

    def test_concurrent_calls_are_independent(self):
        inputs = [bytes([i]) * (i * 13) for i in range(16)]
        results = [None] * len(inputs)

        def work(idx):
            results[idx] = sha1digest(inputs[idx])[0]

        threads = [threading.Thread(target=work, args=(i,)) for i in range(len(inputs))]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        for data, digest in zip(inputs, results):
            self.assertEqual(digest, hashlib.sha1(data).digest())


class TestSHA1State(unittest.TestCase):

    def test_fresh_state_is_iv(self):
        sha = SHA1()
        self.assertEqual(sha.hexdigest(), "67452301efcdab8998badcfe10325476c3d2e1f0")

    def test_single_chunk_update(self):
        sha = SHA1()
        sha.sha1_chunk(SHA1.sha1_padded(b"abc"))
        self.assertEqual(sha.hexdigest(), "a9993e364706816aba3e25717850c26c9cd0d89d")

    def test_reserializing_is_stable(self):
        sha = SHA1()
        sha.sha1_digest(b"abc")
        self.assertEqual(sha.hexdigest(), sha.hexdigest())
        self.assertEqual(sha.state_bytes(), sha.state_bytes())

    def test_instance_reuse_restarts_from_iv(self):
        sha = SHA1()
        first = sha.sha1_digest(b"abc")
        self.assertEqual(sha.sha1_digest(b"abc"), first)
        self.assertEqual(sha.hexdigest(), "a9993e364706816aba3e25717850c26c9cd0d89d")

    def test_block_order_matters(self):
        blocks = [b"\x01" * 64, b"\x02" * 64]
        forward, backward = SHA1(), SHA1()
        for block in blocks:
            forward.sha1_chunk(block)
        for block in reversed(blocks):
            backward.sha1_chunk(block)
        self.assertNotEqual(forward.state_bytes(), backward.state_bytes())

    def test_reduced_rounds_differ_from_full(self):
        full = SHA1().sha1_digest(b"abc")
        reduced = SHA1().sha1_digest(b"abc", num_rounds=1)
        self.assertNotEqual(full, reduced)
        self.assertEqual(len(reduced), 20)

    def test_generatehex_rejects_wrong_size(self):
        with self.assertRaises(ValueError):
            generatehex(b"\x00" * 19)


if __name__ == "__main__":
    unittest.main(verbosity=1)
