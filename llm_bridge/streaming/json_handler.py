"""
JSON stream handler for streamed JSON arrays.

Some endpoints (Gemini's streamGenerateContent without alt=sse) stream one
top-level JSON array whose elements arrive over many reads. This handler
finds the boundaries of each complete element without parsing it.
"""

from typing import List, Optional


class JsonStreamHandler:
    """
    Splits streamed text into complete top-level JSON objects.

    The enclosing array brackets and the commas between elements are
    skipped. Scanning resumes where the previous chunk stopped, so each
    character is inspected once.
    """

    matching_pairs = {'{': '}', '[': ']'}

    def __init__(self):
        """Initialize the JSON stream handler."""
        self.buffer = ""
        self._pos = 0
        self._start: Optional[int] = None
        self._stack: List[str] = []
        self._in_string = False
        self._escape_next = False

    @property
    def pending(self) -> bool:
        """True while an element has started but not yet closed."""
        return self._start is not None

    def process_chunk(self, chunk: str) -> List[str]:
        """
        Process a streaming chunk and return the JSON texts it completed.

        Args:
            chunk: Next piece of decoded text

        Returns:
            Raw JSON text of every element completed by this chunk, in order

        Raises:
            ValueError: The text is not a stream of JSON objects
        """
        if not chunk:
            return []

        self.buffer += chunk
        completed = []
        i = self._pos

        while i < len(self.buffer):
            char = self.buffer[i]

            if self._start is None:
                if char == '{':
                    self._start = i
                    self._stack = ['{']
                elif not (char.isspace() or char in '[],'):
                    raise ValueError(f"Unexpected character {char!r} between JSON values")
                i += 1
                continue

            if self._escape_next:
                self._escape_next = False
            elif self._in_string:
                if char == '\\':
                    self._escape_next = True
                elif char == '"':
                    self._in_string = False
            elif char == '"':
                self._in_string = True
            elif char in self.matching_pairs:
                self._stack.append(char)
            elif char in '}]':
                if not self._stack or self.matching_pairs[self._stack[-1]] != char:
                    raise ValueError(f"Mismatched {char!r} at offset {i}")
                self._stack.pop()
                if not self._stack:
                    completed.append(self.buffer[self._start:i + 1])
                    self._start = None
            i += 1

        # Drop everything before the element still being scanned
        if self._start is None:
            self.buffer = ""
            self._pos = 0
        else:
            self.buffer = self.buffer[self._start:]
            self._pos = i - self._start
            self._start = 0

        return completed

    def reset(self):
        """Reset the handler state."""
        self.buffer = ""
        self._pos = 0
        self._start = None
        self._stack = []
        self._in_string = False
        self._escape_next = False
