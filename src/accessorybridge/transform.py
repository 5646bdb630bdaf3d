"""
Transforms turn a message read from the peer into the response written back.
A transform is any pure callable taking bytes and returning bytes, so a real protocol
framer can be dropped in.
"""

ACK_PREFIX = b"Hello from host! You said: '"
ACK_SUFFIX = b"'"


def acknowledge(message: bytes) -> bytes:
    """
    Wraps the message in a fixed greeting. Works on the raw bytes, so distinct messages
    always give distinct responses, even when they are not valid UTF-8.
    >>> acknowledge(b'ping')
    b"Hello from host! You said: 'ping'"
    """
    return ACK_PREFIX + bytes(message) + ACK_SUFFIX


def echo(message: bytes) -> bytes:
    return bytes(message)


def decode(message: bytes) -> str:
    """ the message as text, for logging """
    return bytes(message).decode('utf-8', errors='replace')


transforms = {
    'acknowledge': acknowledge,
    'echo': echo,
}


def lookup_transform(name):
    """
    Finds a transform by name.
    Raises ValueError for an unknown name.
    """
    try:
        return transforms[name]
    except KeyError:
        raise ValueError("unknown transform '%s', expected one of %s" % (name, ', '.join(sorted(transforms))))
