#!/usr/bin/env python3
"""
Basic example: build an XOR filter, query it, and round-trip it through a file.
"""
import os
import tempfile

from xorfilter import FilterConfig, XorFilter


def main():
    """Build a filter over some user IDs and check membership."""
    config = FilterConfig(fingerprint_bits=16)
    users = [f"user:{i}" for i in range(10000)]

    xor_filter = XorFilter.build(users, seed=7, config=config)
    print(xor_filter)

    assert all(user in xor_filter for user in users)

    strangers = [f"stranger:{i}" for i in range(100000)]
    false_positives = sum(1 for s in strangers if s in xor_filter)
    print(f"False positives: {false_positives}/{len(strangers)} "
          f"(expected ~{len(strangers) * xor_filter.expected_false_positive_rate:.1f})")

    with tempfile.TemporaryDirectory() as tmpdir:
        path = os.path.join(tmpdir, "users.xorf")
        xor_filter.save(path)
        restored = XorFilter.load(path)
        print(f"Restored filter equal: {restored == xor_filter}")

    for key, value in xor_filter.get_stats().items():
        print(f"  {key}: {value}")


if __name__ == "__main__":
    main()
