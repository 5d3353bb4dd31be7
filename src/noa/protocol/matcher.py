"""Incremental substring search over text arriving in fragments."""

from __future__ import annotations


class StreamMatcher:
    """Finds a literal pattern in a stream delivered in arbitrary pieces.

    Only the last ``len(pattern) - 1`` characters need to be carried between
    calls, so memory stays bounded no matter how long the device talks.

    Usage:
        matcher = StreamMatcher("OK\\x04\\x04>")
        for fragment in fragments:
            if matcher.feed(fragment):
                break
    """

    def __init__(self, pattern: str):
        """Initialize matcher.

        Args:
            pattern: Literal text to look for (must not be empty)
        """
        if not pattern:
            raise ValueError("Pattern must not be empty")
        self.pattern = pattern
        self._tail = ""
        self._characters_processed = 0
        self._matched = False

    def feed(self, text: str) -> bool:
        """Append text and check for the pattern.

        Args:
            text: Next fragment of the stream

        Returns:
            True only on the call during which the pattern first appears
        """
        self._characters_processed += len(text)
        if self._matched:
            return False

        window = self._tail + text
        if self.pattern in window:
            self._matched = True
            self._tail = ""
            return True

        keep = len(self.pattern) - 1
        self._tail = window[-keep:] if keep else ""
        return False

    def reset(self) -> None:
        """Forget everything fed so far, keeping the pattern."""
        self._tail = ""
        self._characters_processed = 0
        self._matched = False

    @property
    def matched(self) -> bool:
        """Whether the pattern has been seen since the last reset."""
        return self._matched

    @property
    def characters_processed(self) -> int:
        """Total characters fed since the last reset."""
        return self._characters_processed
