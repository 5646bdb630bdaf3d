class BridgeError(Exception):
    """ Indicates an error condition with the bridge to a peer. """


class OpenFailed(BridgeError):
    """ The channel to the peer could not be opened: the peer is unreachable or access was refused. """


class CloseError(BridgeError):
    """ Releasing the channel failed. The connection is considered closed regardless. """


class CommunicationError(BridgeError):
    """
    Reading from or writing to the connection failed. Ends the communication loop.
    :param written: for write failures, how many bytes of the response reached the channel
    :param total: for write failures, the size of the response
    """
    def __init__(self, message, written=None, total=None):
        super().__init__(message)
        self.written = written
        self.total = total
