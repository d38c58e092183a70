from peer.broadcast import Broadcast
from peer.console import Console
from peer.discovery import Discovery
from peer.events import InputLine, ListeningOn, PeersDiscovered, PeersExpired, TopicMessage, format_address
from peer.pubsub import PubSub
from peer.registry import PeerRegistry
from protocol import control
from protocol.commands import (HELP_TEXT, USAGE_HINT, Help, ListKnownPeers, SendMessage,
                               ShowLocalInfo, Subscribe, Unsubscribe, parse_command)
from protocol.errors import ChatError, PublishError, SubscribeError, SwarmBuildError
from zeroconf import Error as ZeroconfError, Zeroconf
from enum import Enum
import logging
import queue

logger = logging.getLogger(__name__)

_STOP = object()


class Phase(Enum):
    BUILT = "built"
    LISTENING = "listening"
    RUNNING = "running"


class Peer:
    """Local peer state and the event loop that drives it.

    Only ever constructed fully formed, normally through ``Peer.build``. All
    mutation of the subscription set and the registry happens on the thread
    that runs ``run()``.
    """

    def __init__(self, identity, pubsub, events, config, discovery=None, broadcast=None,
                 console=None, zeroconf=None, output=print):
        self.identity = identity
        self.pubsub = pubsub
        self.events = events
        self.config = config
        self.discovery = discovery
        self.broadcast = broadcast
        self.console = console
        self.zeroconf = zeroconf
        self.output = output
        self.registry = PeerRegistry()
        self.subscribed_topics = set()
        self.listen_address = None
        self.phase = Phase.BUILT
        self._running = False

    @classmethod
    def build(cls, config, identity, output=print, stream=None):
        events = queue.Queue()
        try:
            zc = Zeroconf()
        except (OSError, ZeroconfError) as e:
            raise SwarmBuildError(f"Unable to start mDNS: {e}") from e
        pubsub = PubSub(
            identity,
            events,
            connect_timeout=config["connect_timeout"],
            max_message_bytes=config["max_message_bytes"],
            seen_cache_size=config["seen_cache_size"],
        )
        discovery = Discovery(zc, identity.peer_id, events, config["service_type"])
        broadcast = Broadcast(zc, identity.peer_id, config["service_type"], config["advertise_host"])
        console = Console(events, stream)
        logger.debug(f"Peer '{identity.peer_id}' built")
        return cls(identity, pubsub, events, config, discovery=discovery, broadcast=broadcast,
                   console=console, zeroconf=zc, output=output)

    @property
    def peer_id(self):
        return self.identity.peer_id

    # Lifecycle

    def start(self):
        self.pubsub.listen(self.config["listen_host"], self.config["listen_port"])
        # Nothing else feeds the queue yet, so the listen event comes first
        while self.phase is Phase.BUILT:
            self.handle_event(self.events.get())

        # Hear announcements from everyone
        self.pubsub.subscribe(control.CONTROL_TOPIC)
        self.subscribed_topics.add(control.CONTROL_TOPIC)

        if self.broadcast:
            try:
                self.broadcast.start_service(self.listen_address[1])
            except (OSError, ZeroconfError) as e:
                raise SwarmBuildError(f"Unable to announce over mDNS: {e}") from e
        if self.discovery:
            self.discovery.start_service()
        if self.console:
            self.console.start()
        self.phase = Phase.RUNNING

    def run(self):
        self._running = True
        while self._running:
            event = self.events.get()
            if event is _STOP:
                break
            try:
                self.handle_event(event)
            except Exception as e:
                logger.exception(f"Error handling {type(event).__name__}")
                self.output(f"[!] Error: {e}")

    def stop(self):
        self._running = False
        self.events.put(_STOP)

    def shutdown(self):
        self.stop()
        if self.broadcast:
            self.broadcast.stop_service()
        if self.discovery:
            self.discovery.stop()
        self.pubsub.close()
        if self.zeroconf:
            self.zeroconf.close()
        logger.debug("Peer shut down")

    # Events

    def handle_event(self, event):
        if isinstance(event, InputLine):
            self.handle_line(event.line)
        elif isinstance(event, TopicMessage):
            self._on_message(event)
        elif isinstance(event, PeersDiscovered):
            for peer_id, address in event.peers:
                self._on_discovered(peer_id, address)
        elif isinstance(event, PeersExpired):
            for peer_id in event.peer_ids:
                self.registry.on_peer_expired(peer_id)
                self.pubsub.remove_explicit_peer(peer_id)
        elif isinstance(event, ListeningOn):
            self.listen_address = event.address
            self.output(f"Local node is listening on {format_address(event.address)}")
            if self.phase is Phase.BUILT:
                self.phase = Phase.LISTENING
        else:
            logger.warning(f"Unknown event {event!r}")

    def _on_discovered(self, peer_id, address):
        self.pubsub.add_explicit_peer(peer_id, address)
        if not self.registry.on_peer_discovered(peer_id, address):
            return
        self.output(f"mDNS discovered a new peer: {peer_id}")
        if self.config.get("announce_on_discovery", True):
            for topic in sorted(self.subscribed_topics - {control.CONTROL_TOPIC}):
                try:
                    self.pubsub.publish(control.CONTROL_TOPIC, control.encode(control.SubscribeAnnounce(topic)),
                                        wait=False)
                except PublishError as e:
                    logger.warning(f"Could not re-announce {topic} to {peer_id}: {e}")

    def _on_message(self, event):
        message = control.decode(event.data)
        if isinstance(message, control.SubscribeAnnounce):
            self.registry.on_subscribe_announce(event.sender, message.topic)
        elif isinstance(message, control.UnsubscribeAnnounce):
            self.registry.on_unsubscribe_announce(event.sender, message.topic)
        else:
            self.output(f"[{event.topic}] {event.sender}: {message.text}")

    # Commands

    def handle_line(self, line):
        command = parse_command(line)
        if isinstance(command, Subscribe):
            self.subscribe(command.topic)
        elif isinstance(command, Unsubscribe):
            self.unsubscribe(command.topic)
        elif isinstance(command, SendMessage):
            self.send_message(command.topic, command.body)
        elif isinstance(command, ListKnownPeers):
            self.print_known_peers()
        elif isinstance(command, ShowLocalInfo):
            self.print_info()
        elif isinstance(command, Help):
            self.output(HELP_TEXT)
        else:
            self.output(USAGE_HINT)

    def subscribe(self, topic):
        if topic == control.CONTROL_TOPIC:
            self.output(f"{topic} is reserved for subscription announcements")
            return False
        try:
            self.pubsub.subscribe(topic)
        except SubscribeError as e:
            self.output(f"Unable to subscribe to {topic}: {e}")
            return False
        self.subscribed_topics.add(topic)
        self.output(f"Subscribed to {topic} sucessfully")
        self._announce(control.SubscribeAnnounce(topic))
        return True

    def unsubscribe(self, topic):
        if topic == control.CONTROL_TOPIC:
            self.output(f"{topic} is reserved for subscription announcements")
            return False
        if not self.pubsub.unsubscribe(topic):
            self.output("Not subscribed to topic")
            return False
        self.subscribed_topics.discard(topic)
        self.output(f"Unsubscribed from {topic} succesfully")
        self._announce(control.UnsubscribeAnnounce(topic))
        return True

    def _announce(self, message):
        try:
            self.pubsub.publish(control.CONTROL_TOPIC, control.encode(message))
        except PublishError as e:
            logger.debug(f"Announcement {message} not sent: {e}")
            self.output("Unable to send subscription broadcast to peer")

    def send_message(self, topic, body):
        try:
            self.pubsub.publish(topic, body.encode("utf-8"))
        except ChatError as e:
            self.output(f"Unable to send message in topic {topic}: {e}")
            return False
        return True

    def print_known_peers(self):
        records = self.registry.list()
        if not records:
            self.output("No peers known yet")
            return
        for record in records:
            self.output("----------------------")
            self.output(f"PeerId: {record.peer_id}")
            self.output(f"Address: {format_address(record.address)}")
            self.output("Subscribed to:")
            self._print_topics(record.subscribed_topics)

    def print_info(self):
        self.output(f"PeerId: {self.peer_id}")
        if self.listen_address:
            self.output(f"Address: {format_address(self.listen_address)}")
        else:
            self.output("Address: not listening yet")
        self.output("Subscribed to:")
        self._print_topics(self.subscribed_topics)

    def _print_topics(self, topics):
        if not topics:
            self.output("\tNot yet subscribed to any topic")
        for topic in sorted(topics):
            self.output(f"\t{topic}")

    def print_welcome(self):
        self.output("P2P Chat app - Ready to connect!")
        self.output("Type /help for commands or /subscribe <topic> to get started")
        self.output("-------------------------------------------------")
        self.output(HELP_TEXT)
