"""Logging filters for stream routing."""

import logging


class StreamRoutingFilter(logging.Filter):
    """Filter that routes log records based on stream extra parameter.

    Records without a ``stream`` extra go to stderr when they are warnings or
    worse, and to stdout otherwise.

    Parameters
    ----------
    stream_type : str
        Stream type to allow: "stdout" or "stderr"
    """

    def __init__(self, stream_type: str) -> None:
        super().__init__()
        self.stream_type = stream_type

    def filter(self, record: logging.LogRecord) -> bool:
        """Filter log records by stream type.

        Parameters
        ----------
        record : logging.LogRecord
            Log record to filter

        Returns
        -------
        bool
            True if the record belongs to this filter's stream
        """
        stream = getattr(record, "stream", None)

        if stream is None:
            stream = "stderr" if record.levelno >= logging.WARNING else "stdout"

        return stream == self.stream_type
