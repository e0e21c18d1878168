"""User-facing rate limit messages."""


def format_rate_limit_message(count: int, max_triggers: int) -> str:
    """Build the message shown when a session has no auto-research budget left.

    Args:
        count: Triggers already used in the current window
        max_triggers: Per-session ceiling

    Returns:
        Human readable message with the two ways forward
    """
    return (
        f"Rate limit exceeded: {count}/{max_triggers} auto-research triggers used "
        f"in this session.\n"
        f"You can:\n"
        f"  - Proceed with the current confidence level\n"
        f"  - Start a new session to reset the limit"
    )
