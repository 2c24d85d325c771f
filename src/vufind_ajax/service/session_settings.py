"""Per-request session write control."""


class SessionSettings:
    """Tracks whether the session may be written back after this request.

    Parallel AJAX calls from one page share a session; a slow request that
    writes back late would overwrite changes made by the others. Handlers that
    never modify the session switch writing off before calling slow backends.
    """

    def __init__(self) -> None:
        self._writes_disabled = False

    def disable_write(self) -> None:
        """Prevent the session from being saved. Calling it again is harmless."""
        self._writes_disabled = True

    @property
    def writes_disabled(self) -> bool:
        return self._writes_disabled
