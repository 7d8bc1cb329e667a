"""Logging formatters for batchkit handlers."""

import logging


class EventFormatter(logging.Formatter):
    """Logging formatter that names the bus event a record relates to."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record, appending the ``event`` extra when present.

        Parameters
        ----------
        record : logging.LogRecord
            Log record to format

        Returns
        -------
        str
            Formatted log message
        """
        msg = super().format(record)
        event = getattr(record, "event", None)

        if event:
            return f"{msg} [event={event}]"

        return msg
