"""Known-answer checks for the SHA-1 engine.

Runs the engine over literal test vectors (di-mgt.com.au and Wikipedia
examples), optionally a ~1 GiB input, and optionally the NIST NSRL sample
vectors (NSRLvectors.zip, downloaded and unzipped by hand). Every vector is
compared twice: once through the engine's own hex rendering and once through
generatehex() applied to the binary digest. The process exit status is the
number of mismatches.

Usage:
    sha1-test [-l] [-nsrl DIR] [-v]
"""
import argparse
import logging
import os
import sys

from sha1 import DigestError, generatehex, sha1digest

logger = logging.getLogger(__name__)

KNOWN_VECTORS = [
    (b"abc", "a9993e364706816aba3e25717850c26c9cd0d89d"),
    (b"", "da39a3ee5e6b4b0d3255bfef95601890afd80709"),
    (b"abcdbcdecdefdefgefghfghighijhijkijkljklmklmnlmnomnopnopq",
     "84983e441c3bd26ebaae4aa1f95129e5e54670f1"),
    (b"abcdefghbcdefghicdefghijdefghijkefghijklfghijklmghijklmnhijklmno"
     b"ijklmnopjklmnopqklmnopqrlmnopqrsmnopqrstnopqrstu",
     "a49b2446a02c645bf419f995b67091253a04a259"),
    (b"a" * 1000000, "34aa973cd4c4daa4f61eeb2bdbad27316534016f"),
    (b"The quick brown fox jumps over the lazy dog",
     "2fd4e1c67a2d28fced849ee1bb76e7391b93eb12"),
    (b"The quick brown fox jumps over the lazy cog",
     "de9f2c7fd25e1b3afad3e85a0bd17d9b100db4b3"),
]

LARGE_BASE = b"abcdefghbcdefghicdefghijdefghijkefghijklfghijklmghijklmnhijklmno"
LARGE_REPEAT = 16777216
LARGE_DIGEST = "7789f0c9ef7bfc40d93311143dfbe69e2017f592"

NSRL_HASHES = "byte-hashes.sha1"
NSRL_DATA = "byte%04d.dat"


class HarnessError(Exception):
    """A fixture could not be found or read; the run is aborted."""


def testhash(data, knowndigest):
    """Hash data and compare both renderings with knowndigest.

    Returns the mismatch count: 0 when both match, up to 2.
    """
    digest, hexdigest = sha1digest(data)
    binhexdigest = generatehex(digest)
    known = knowndigest.lower()

    mismatch = 0
    hexstatus = binstatus = "matches"
    if hexdigest != known:
        hexstatus = "does NOT match"
        mismatch += 1
    if binhexdigest != known:
        binstatus = "does NOT match"
        mismatch += 1

    log = logger.warning if mismatch else logger.info
    log("Known digest:  '%s'  data length: %d", knowndigest, len(data))
    log("  Hex digest:  '%s'  %s", hexdigest, hexstatus)
    log("  Bin digest:  '%s'  %s", binhexdigest, binstatus)
    return mismatch


def large_vector():
    """Return the ~1 GiB input and its known digest."""
    return LARGE_BASE * LARGE_REPEAT, LARGE_DIGEST


def read_nsrl_hashes(path):
    """Read known digests from an NSRL byte-hashes.sha1 file.

    Only lines shaped "<40 hex digits> ^" carry a digest; the " ^" marker
    is stripped and everything else (headers, comments) is skipped.
    """
    hashes = []
    try:
        with open(path, "r") as f:
            for line in f:
                if len(line) >= 42 and line[40] == " " and line[41] == "^":
                    hashes.append(line[:40])
    except OSError as e:
        raise HarnessError("Error opening %s: %s" % (path, e.strerror)) from e
    logger.debug("hash count: %d", len(hashes))
    return hashes


def read_fixture(path):
    """Read a whole fixture file, refusing short reads."""
    try:
        with open(path, "rb") as f:
            expected = os.fstat(f.fileno()).st_size
            data = f.read()
    except OSError as e:
        raise HarnessError("Error reading %s: %s" % (path, e.strerror)) from e
    if len(data) != expected:
        raise HarnessError("Short read of %s, expected %d bytes" % (path, expected))
    return data


def nsrl_vectors(directory):
    """Yield (path, data, knowndigest) for each NSRL sample vector in order."""
    hashes = read_nsrl_hashes(os.path.join(directory, NSRL_HASHES))
    for idx, knowndigest in enumerate(hashes):
        path = os.path.join(directory, NSRL_DATA % idx)
        yield path, read_fixture(path), knowndigest


def run(large=False, nsrl_dir=None):
    """Run every selected vector and return the total mismatch count."""
    failures = 0
    for data, knowndigest in KNOWN_VECTORS:
        failures += testhash(data, knowndigest)

    if large:
        logger.info("Large test: %d repetitions of a %d byte base", LARGE_REPEAT, len(LARGE_BASE))
        data, knowndigest = large_vector()
        failures += testhash(data, knowndigest)
        del data

    if nsrl_dir:
        for path, data, knowndigest in nsrl_vectors(nsrl_dir):
            logger.info("File: %s", path)
            failures += testhash(data, knowndigest)

    return failures


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Check the SHA-1 engine against known digests")
    parser.add_argument("-l", "--large", action="store_true",
                        help="also hash a ~1 GiB input (slow)")
    parser.add_argument("-nsrl", "--nsrl", metavar="DIR", dest="nsrl_dir",
                        help="directory holding the unzipped NSRL sample vectors")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="log every comparison, not only mismatches")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING,
                        format="%(levelname)s: %(message)s")
    try:
        failures = run(large=args.large, nsrl_dir=args.nsrl_dir)
    except (HarnessError, DigestError) as e:
        logger.error("%s", e)
        return 1
    print("Failures: %d" % failures)
    return failures


if __name__ == "__main__":
    sys.exit(main())
