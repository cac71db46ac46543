"""
Error types shared by StreamNotify collaborators.

The tick loop never lets any of these escape: transient errors skip the
affected step, edit errors turn into a corrective action, and configuration
errors only happen before the loop starts.
"""


class StreamNotifyError(Exception):
    """Base class for StreamNotify errors."""


class TransientIOError(StreamNotifyError):
    """A poll or send failed; the step is skipped for this tick."""


class NotModifiedError(StreamNotifyError):
    """Pinned message edit carried the same content. Counts as success."""


class PersistentEditError(StreamNotifyError):
    """Pinned message is gone or invalid; its stored id must be dropped."""


class ConfigurationError(StreamNotifyError):
    """Invalid or incomplete configuration. Fatal at startup."""
