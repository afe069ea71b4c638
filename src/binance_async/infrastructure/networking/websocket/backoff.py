"""
Reconnect backoff.

delay(attempt) = min(base * factor ** (attempt - 1), max_delay) * (1 +- jitter)

The exponent stops growing once the product passes ``max_delay``, so any
attempt number yields a finite delay. A seeded ``random.Random`` may be passed
to make the jitter reproducible.
"""

import math
import random
from typing import Optional


def compute_backoff_delay(attempt: int,
                          base_delay: float,
                          factor: float,
                          max_delay: float,
                          jitter: float = 0.0,
                          rng: Optional[random.Random] = None) -> float:
    """
    Delay in seconds before reconnect attempt ``attempt`` (1-based).

    Args:
        attempt: Reconnect attempt number, starting at 1
        base_delay: Delay for the first attempt
        factor: Multiplier per attempt
        max_delay: Upper bound before jitter is applied
        jitter: Relative jitter (0.1 = +-10%)
        rng: Random source for jitter
    """
    exponent = max(attempt - 1, 0)
    if base_delay <= 0:
        delay = 0.0
    elif factor > 1.0 and base_delay >= max_delay:
        delay = max_delay
    else:
        if factor > 1.0:
            exponent = min(exponent, math.ceil(math.log(max_delay / base_delay, factor)))
        delay = min(base_delay * (factor ** exponent), max_delay)
    if jitter > 0:
        rng = rng or random
        delay *= 1.0 + rng.uniform(-jitter, jitter)
    return max(delay, 0.0)
