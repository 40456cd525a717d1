from typing import List, NamedTuple


class PartnerPair(NamedTuple):
    a: int
    b: int


def build_partner_wheel(n: int) -> List[List[PartnerPair]]:
    """1-factorize K_n with the polygon (circle) method.

    Player n-1 stays fixed in the centre while 0..n-2 rotate one step per
    round. Round r pairs ring[0] with the centre and ring[k] with ring[-k],
    giving n-1 rounds of n/2 disjoint pairs in which every unordered pair of
    players partners exactly once.
    """

    if n < 2 or n % 2 != 0:
        raise ValueError(f"partner wheel needs a positive even player count, got {n}")
    ring = list(range(n - 1))
    fixed = n - 1
    rounds: List[List[PartnerPair]] = []
    for _ in range(n - 1):
        pairs = [PartnerPair(ring[0], fixed)]
        for k in range(1, (n - 2) // 2 + 1):
            pairs.append(PartnerPair(ring[k], ring[-k]))
        rounds.append(pairs)
        ring.insert(0, ring.pop())
    return rounds
