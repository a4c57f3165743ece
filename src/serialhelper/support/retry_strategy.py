class RetryStrategy:
    """ Determines how long to wait before an operation is retried. """

    def __call__(self):
        return 0

    def reset(self):
        """ called when the operation succeeds """


class PeriodRetryStrategy(RetryStrategy):
    """
    Retries at a fixed period, for as many attempts as are needed.
    The number of attempts since the last reset is kept for reporting.
    """

    def __init__(self, retry_period):
        """
        :param retry_period: The retry period in seconds.
        """
        if retry_period < 0:
            raise ValueError("retry period must not be negative: %s" % retry_period)
        self.retry_period = retry_period
        self.attempts = 0

    def __call__(self):
        """ returns the time in seconds to wait before the next attempt. """
        self.attempts += 1
        return self.retry_period

    def reset(self):
        self.attempts = 0
