#main.py  ==  topic chat peer
           #↳ announces itself over mDNS
           #↳ discovers others
           #↳ subscribes / unsubscribes to topics and tells everyone on "global"
           #↳ publishes chat messages
           #↳ acts on user input
'''topicchat/
├── main.py                 # Entry point to launch the peer
├── config.py               # config.yaml loading and validation
├── peer/
│   ├── peer.py             # Peer: local state and event loop
│   ├── registry.py         # Known peers and their believed subscriptions
│   ├── pubsub.py           # Topic publish/subscribe over TCP
│   ├── discovery.py        # mDNS discovery using zeroconf
│   ├── broadcast.py        # mDNS broadcast using zeroconf
│   ├── console.py          # stdin reader
│   └── events.py           # Event loop events
├── crypto/
│   └── identity.py         # Ed25519 keypair and peer id
└── protocol/
    ├── commands.py         # /subscribe, /send, ... parsing
    ├── control.py          # __SUB__ / __UNSUB__ announcements
    ├── message.py          # Signed PUBLISH envelopes
    ├── handler.py          # Inbound connection dispatcher
    ├── json_handler.py     # Newline-delimited JSON framing
    └── errors.py           # Error types
'''

import argparse
import logging
import signal
import sys

from config import load_config
from crypto.identity import Identity
from peer.peer import Peer
from protocol.errors import FATAL_ERRORS, ChatError

logger = logging.getLogger("main")


def setup_logging(level):
    root = logging.getLogger()
    root.setLevel(level)
    if not root.hasHandlers():
        ch = logging.StreamHandler()
        formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
        ch.setFormatter(formatter)
        root.addHandler(ch)


def build_arg_parser():
    parser = argparse.ArgumentParser(description="Peer-to-peer topic chat")
    parser.add_argument("--config", default="config.yaml", help="Path to the YAML config file")
    parser.add_argument("--log-level", default=None, help="Override the configured log level")
    return parser


def _terminate(signum, frame):
    raise KeyboardInterrupt


def main(argv=None):
    args = build_arg_parser().parse_args(argv)
    try:
        config = load_config(args.config, log_level=args.log_level)
    except ChatError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 1
    setup_logging(config["log_level"])

    try:
        identity = Identity(config["key_path"])
        peer = Peer.build(config, identity)
    except FATAL_ERRORS + (OSError, ValueError) as e:
        logger.error(f"Unable to build peer: {e}")
        return 1

    signal.signal(signal.SIGTERM, _terminate)
    try:
        peer.print_welcome()
        peer.start()
        peer.run()
    except FATAL_ERRORS as e:
        logger.error(f"Unable to start peer: {e}")
        return 1
    except KeyboardInterrupt:
        print("\nInterrupted. Exiting")
    finally:
        peer.shutdown()
    return 0


if __name__ == "__main__":
    sys.exit(main())
