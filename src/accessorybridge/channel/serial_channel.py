"""
Implements a channel over a serial port.
"""

import io
import logging
import re

import serial
from serial.tools import list_ports

from accessorybridge.channel.base import Channel, ChannelOpener, ChannelOpenError
from accessorybridge.channel.discovery import PolledPeerDiscovery

logger = logging.getLogger(__name__)


class SerialReader(io.RawIOBase):
    """
    Reads whatever has arrived on the serial port. Blocks for the first byte (or until the
    port's read timeout expires, giving a zero-length read) and then drains what is waiting.
    """

    def __init__(self, ser: serial.Serial):
        super().__init__()
        self.ser = ser

    def readable(self):
        return True

    def readinto(self, b):
        first = self.ser.read(1)
        if not first:
            return 0
        waiting = min(self.ser.in_waiting, len(b) - 1)
        data = first + (self.ser.read(waiting) if waiting > 0 else b'')
        b[:len(data)] = data
        return len(data)


class SerialChannel(Channel):
    """
    A channel that provides comms via a serial port.
    """

    def __init__(self, ser: serial.Serial):
        self.ser = ser
        self._input = SerialReader(ser)
        # flushing waits for the port to drain, which locks up if the device is unplugged mid flush
        ser.flush = self._no_flush

    def _no_flush(self, *args, **kwargs):
        pass

    @property
    def peer(self):
        return self.ser.port

    @property
    def input(self):
        return self._input

    @property
    def output(self):
        return self.ser

    @property
    def open(self) -> bool:
        return self.ser.is_open

    def close(self):
        if not self.ser.is_open:
            return
        if hasattr(self.ser, 'cancel_read'):
            self.ser.cancel_read()
        self.ser.close()


class SerialChannelOpener(ChannelOpener):
    """
    Opens the serial port named by the peer.
    :param baudrate the line speed
    :param read_timeout seconds to wait for data before returning a zero-length read. None blocks indefinitely.
    """

    def __init__(self, baudrate=115200, read_timeout=None):
        self.baudrate = baudrate
        self.read_timeout = read_timeout

    def _create(self, port) -> serial.Serial:
        ser = serial.Serial()
        ser.port = port
        ser.baudrate = self.baudrate
        ser.timeout = self.read_timeout
        return ser

    def __call__(self, peer):
        ser = self._create(peer)
        try:
            ser.open()
        except serial.SerialException as e:
            raise ChannelOpenError("unable to open serial port %s: %s" % (peer, e)) from e
        logger.info("opened serial port %s at %d baud" % (peer, self.baudrate))
        return SerialChannel(ser)


def serial_port_info():
    """
    :return: a tuple of ListPortInfo for each serial port on the host
    """
    return tuple(list_ports.comports())


def matches(text, regex):
    """
    >>> bool(matches("USB VID:PID=2B04:C006 SER=00000000050C LOCATION=20-5", r"USB VID:PID=2b04:c006.*"))
    True
    >>> bool(matches("A", "b"))
    False
    """
    return re.match(regex, text or '', flags=re.IGNORECASE)


class SerialPortDiscovery(PolledPeerDiscovery):
    """ Monitors local serial ports for ones whose hardware id matches a pattern. """

    def __init__(self, port_match='.*'):
        super().__init__()
        self.port_match = port_match

    def _is_allowed(self, peer, info):
        return bool(matches(getattr(info, 'hwid', ''), self.port_match))

    def _fetch_available(self):
        return {p.device: p for p in self._fetch_ports()}

    def _fetch_ports(self):
        return serial_port_info()
