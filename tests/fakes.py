"""In-memory stand-ins for database cursors used across the test suite."""


class FakeCursor:
    """In-memory DB-API cursor that records every fetchmany() call."""

    def __init__(self, description, rows, fail_on_fetch=None):
        self.description = description
        self._rows = list(rows)
        self._pos = 0
        self.fetch_sizes = []
        self.closed = False
        self._fail_on_fetch = fail_on_fetch

    def fetchmany(self, size):
        self.fetch_sizes.append(size)
        if self._fail_on_fetch is not None and len(self.fetch_sizes) == self._fail_on_fetch:
            raise RuntimeError("connection reset by peer")
        batch = self._rows[self._pos : self._pos + size]
        self._pos += len(batch)
        return batch

    def close(self):
        self.closed = True


def column(name, type_code=None, display_size=None, internal_size=None):
    return (name, type_code, display_size, internal_size, None, None, None)
