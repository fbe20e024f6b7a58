"""Range arithmetic shared by the diff, remap, and highlight code."""


def common_prefix_len(a: str, b: str) -> int:
    """Length of the longest shared prefix of ``a`` and ``b``."""
    limit = min(len(a), len(b))
    index = 0
    while index < limit and a[index] == b[index]:
        index += 1
    return index


def common_suffix_len(a: str, b: str) -> int:
    """Length of the longest shared suffix of ``a`` and ``b``."""
    limit = min(len(a), len(b))
    index = 0
    while index < limit and a[-1 - index] == b[-1 - index]:
        index += 1
    return index


def ranges_overlap(a_start: int, a_end: int, b_start: int, b_end: int) -> bool:
    """Strict overlap of half-open ranges; touching endpoints do not overlap."""
    return a_start < b_end and b_start < a_end


def clamp(value: int, lo: int, hi: int) -> int:
    return max(lo, min(hi, value))
