class QuickfileError(Exception):
    """Base class for all quickfile errors."""


class IndexRebuildError(QuickfileError):
    """The file listing could not be produced or decoded."""


class ProtocolError(QuickfileError):
    """A request frame could not be parsed."""


class StartupError(QuickfileError):
    """The daemon could not build its initial index."""


class ClientError(QuickfileError):
    pass


class DaemonNotRunningError(ClientError):
    def __init__(self, socket_path):
        super().__init__(f"Daemon not running (no socket at {socket_path})")
        self.socket_path = socket_path


class ClientTimeoutError(ClientError):
    """No in-band response arrived before the timeout."""
