class RelayError(Exception):
    """Base class for expected, user-facing relay failures."""


class InvalidPollError(RelayError):
    pass


class PollNotFoundError(RelayError):
    def __init__(self, poll_id: str):
        self.poll_id = poll_id
        super().__init__(f"Poll not found: {poll_id}")


class InvalidOptionError(RelayError):
    def __init__(self, poll_id: str, option_index: int, option_count: int):
        self.poll_id = poll_id
        self.option_index = option_index
        self.option_count = option_count
        super().__init__(f"Invalid option {option_index} for poll {poll_id} ({option_count} options)")


class CompletionError(RelayError):
    """Completion service failed or returned no content."""
