"""
Runs the bridge from the command line, answering every message from the accessory.

    python -m accessorybridge serial [--port PORT]
    python -m accessorybridge tcp HOST:PORT
"""
import argparse
import logging
import sys
import time

from configobj import ConfigObjError

from accessorybridge.channel.discovery import FixedPeerDiscovery
from accessorybridge.channel.serial_channel import SerialChannelOpener, SerialPortDiscovery
from accessorybridge.channel.socket_channel import SocketChannelOpener, parse_endpoint
from accessorybridge.config.config import BridgeSettings, load_settings
from accessorybridge.discovery import ManagedPeerDiscovery
from accessorybridge.loop import ZeroReadPolicy, loop_factory
from accessorybridge.manager import ConnectionManager
from accessorybridge.transform import lookup_transform, transforms
from accessorybridge.transport import TransportHandle

logger = logging.getLogger('accessorybridge')


def build_parser():
    parser = argparse.ArgumentParser(prog='accessorybridge', description=__doc__.strip().splitlines()[0])
    parser.add_argument('--config', metavar='DIR', help='directory containing bridge.cfg')
    parser.add_argument('--transform', choices=sorted(transforms), help='response to send for each message')
    parser.add_argument('--zero-read', choices=[p.value for p in ZeroReadPolicy],
                        help='how to treat a read that returns no bytes')
    parser.add_argument('-v', '--verbose', action='store_true', help='log every message')
    sub = parser.add_subparsers(dest='transport')
    sub.required = True
    serial_parser = sub.add_parser('serial', help='bridge to an accessory on a serial port')
    serial_parser.add_argument('--port', help='the port to open, instead of watching for matching ports')
    serial_parser.add_argument('--baudrate', type=int)
    tcp_parser = sub.add_parser('tcp', help='bridge to a peer listening on a TCP port')
    tcp_parser.add_argument('endpoint', type=parse_endpoint, metavar='HOST:PORT')
    return parser


def apply_args(settings: BridgeSettings, args):
    """ command line values override the configured ones """
    if args.transform:
        settings.transform = args.transform
    if args.zero_read:
        settings.zero_read = args.zero_read
    if args.verbose:
        settings.log_level = 'DEBUG'
    if getattr(args, 'baudrate', None):
        settings.serial.baudrate = args.baudrate
    return settings


def build_discovery(settings: BridgeSettings, args):
    """
    Creates the opener and the source of availability signals for the chosen transport.
    """
    if args.transport == 'tcp':
        opener = SocketChannelOpener(read_timeout=settings.read_timeout)
        discovery = FixedPeerDiscovery(args.endpoint)
    else:
        opener = SerialChannelOpener(settings.serial.baudrate, settings.read_timeout)
        discovery = FixedPeerDiscovery(args.port) if args.port else SerialPortDiscovery(settings.serial.port_match)
    return opener, discovery


# the zero-read policy used when neither the configuration nor the command line sets one
transport_zero_read = {
    'serial': ZeroReadPolicy.IGNORE,
    'tcp': ZeroReadPolicy.END_OF_STREAM,
}


def zero_read_policy(settings: BridgeSettings, transport) -> ZeroReadPolicy:
    if settings.zero_read:
        return ZeroReadPolicy(settings.zero_read)
    return transport_zero_read[transport]


def build_bridge(settings: BridgeSettings, args) -> ManagedPeerDiscovery:
    opener, discovery = build_discovery(settings, args)
    create_task = loop_factory(lookup_transform(settings.transform), settings.buffer_size,
                               zero_read_policy(settings, args.transport), settings.idle_delay)
    manager = ConnectionManager(TransportHandle(opener), create_task, settings.join_timeout)
    manager.events.add(log_bridge_events)
    return ManagedPeerDiscovery(discovery, manager)


def log_bridge_events(event):
    logger.debug("event %s" % type(event).__name__)


def configure_logging(level):
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter('%(asctime)s %(levelname)s %(name)s: %(message)s'))
    logger.addHandler(handler)
    logger.setLevel(level)


def run(bridge: ManagedPeerDiscovery, poll_interval, sleep=time.sleep):
    """ polls for peers and keeps the manager updated until interrupted """
    try:
        while True:
            bridge.update()
            sleep(poll_interval)
    except KeyboardInterrupt:
        logger.info("stopping")
    finally:
        bridge.manager.close()
        bridge.manager.update()


def main(argv=None):
    args = build_parser().parse_args(argv)
    try:
        settings = apply_args(load_settings(args.config), args)
    except ConfigObjError as e:
        sys.stderr.write("configuration error: %s\n" % e)
        return 2
    configure_logging(settings.log_level)
    bridge = build_bridge(settings, args)
    run(bridge, settings.poll_interval)
    return 0


if __name__ == '__main__':
    sys.exit(main())
