"""
Reconnection backoff

Exponential backoff for reconnect attempts: the delay doubles on every
scheduled attempt up to a ceiling and drops back after a successful connect.
"""


class BackoffTimer:
    """Exponential backoff timer

    ``current`` is the delay the next reconnect attempt will wait. It stays
    within [initial, maximum] and never decreases except through ``reset``.
    """

    def __init__(self,
                 initial: float = 0.5,
                 maximum: float = 16.0,
                 factor: float = 2.0,
                 reset_value: float = 1.0):
        """Initialize backoff timer

        Args:
            initial: Delay before the first attempt (seconds)
            maximum: Delay ceiling (seconds)
            factor: Growth factor per attempt
            reset_value: Delay after a successful connect (seconds)
        """
        self.initial = initial
        self.maximum = maximum
        self.factor = factor
        self.reset_value = reset_value
        self.current = initial
        self.attempts = 0

    def reset(self):
        """Connection succeeded; start again from ``reset_value``"""
        self.current = min(self.reset_value, self.maximum)
        self.attempts = 0

    def next_delay(self) -> float:
        """Get the delay for the next attempt and grow the backoff

        Returns:
            float: Delay time (seconds)
        """
        delay = self.current
        self.current = min(self.current * self.factor, self.maximum)
        self.attempts += 1
        return delay
